"""
ORM Model for Critical Control Point definitions.

Authored out of band by the HACCP plan; read-only to the check workflow.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, Boolean, Float

from ccpguard.app.core.database import Base


class CCPDefinitionORM(Base):
    __tablename__ = "ccp_definitions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    process_stage = Column(String(100), nullable=True)
    critical_limit = Column(String(255), nullable=False)  # free text, e.g. "≥ 75°C core"
    unit = Column(String(20), nullable=False, default="celsius")  # celsius | fahrenheit | visual | other
    limit_operator = Column(String(20), nullable=False, default="at_least")
    tolerance = Column(Float, nullable=True)  # only for within_tolerance
    monitoring_parameter = Column(String(255), nullable=True)
    check_frequency = Column(String(100), nullable=True)
    responsible_role = Column(String(50), nullable=True)

    corrective_actions = Column(JSON, nullable=True)  # [{action, responsible_person, time_limit}]
    linked_menu_items = Column(JSON, nullable=True)  # menu item ids blocked while an incident is open

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
