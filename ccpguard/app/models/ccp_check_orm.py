"""
ORM Model for CCP check records.

Root of the food-safety audit chain. Rows are written once and never updated.
"""
import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, JSON

from ccpguard.app.core.database import Base


class CCPCheckRecordORM(Base):
    __tablename__ = "ccp_checks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Client-generated idempotency key; a retried submission maps to the same row
    submission_id = Column(String(64), nullable=True, unique=True, index=True)

    # Denormalised for audit readability
    ccp_id = Column(String(36), nullable=False, index=True)
    ccp_name = Column(String(255), nullable=False)

    check_date = Column(Date, nullable=False, index=True)
    check_time = Column(String(8), nullable=False)
    recorded_value = Column(String(255), nullable=False)
    unit = Column(String(20), nullable=True)
    critical_limit = Column(String(255), nullable=False)
    limit_operator = Column(String(20), nullable=True)
    status = Column(String(10), nullable=False, index=True)  # pass | fail

    staff_id = Column(String(255), nullable=True)
    staff_name = Column(String(255), nullable=True)
    staff_email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Snapshots taken only when the check failed
    corrective_actions_triggered = Column(JSON, nullable=True)
    blocked_menu_items = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False)
