"""
ORM Model for food-safety incident records.

One row per failing CCP check. Rows are under legal hold: they are never
deleted, and only the resolution and manager-annotation columns change
after creation.
"""
import uuid
from sqlalchemy import Column, String, Text, DateTime, JSON, Boolean

from ccpguard.app.core.database import Base


class IncidentRecordORM(Base):
    __tablename__ = "incident_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Back-reference to the failing check (exactly one incident per check)
    ccp_check_id = Column(String(36), nullable=False, unique=True, index=True)
    ccp_id = Column(String(36), nullable=False, index=True)
    ccp_name = Column(String(255), nullable=False)

    failure_value = Column(String(255), nullable=False)
    critical_limit = Column(String(255), nullable=False)
    unit = Column(String(20), nullable=True)

    incident_time = Column(DateTime(timezone=True), nullable=False, index=True)
    detected_by_id = Column(String(255), nullable=True)
    detected_by_name = Column(String(255), nullable=True)
    detected_by_email = Column(String(255), nullable=True)

    corrective_action_type = Column(String(30), nullable=False, default="pending")
    corrective_action_description = Column(Text, nullable=True)
    resolution_result = Column(String(50), nullable=False, default="pending", index=True)
    recheck_passed = Column(Boolean, nullable=True)
    # Passing check that closed the incident, when closed by a submission
    resolved_by_check_id = Column(String(36), nullable=True, index=True)

    action_taken_by_id = Column(String(255), nullable=True)
    action_taken_by_name = Column(String(255), nullable=True)
    action_taken_by_email = Column(String(255), nullable=True)
    action_time = Column(DateTime(timezone=True), nullable=True)

    blocked_menu_items = Column(JSON, nullable=True)
    incident_severity = Column(String(20), nullable=False, index=True)  # minor | major | critical
    requires_manual_review = Column(Boolean, nullable=False, default=False)
    is_legal_hold = Column(Boolean, nullable=False, default=True)

    # Manager annotation
    manager_notes = Column(Text, nullable=True)
    manager_notes_by_id = Column(String(255), nullable=True)
    manager_notes_by_email = Column(String(255), nullable=True)
    manager_notes_time = Column(DateTime(timezone=True), nullable=True)
