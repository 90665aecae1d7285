"""
ORM Model for denormalised operation reports.

Derived summary rows used by cross-cutting reporting; the CCP check is the
source of truth.
"""
import uuid
from sqlalchemy import Column, String, Integer, Date, DateTime, JSON

from ccpguard.app.core.database import Base


class OperationReportORM(Base):
    __tablename__ = "operation_reports"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    report_type = Column(String(30), nullable=False)
    location_id = Column(String(50), nullable=True)
    staff_id = Column(String(255), nullable=True)
    staff_name = Column(String(255), nullable=True)
    staff_email = Column(String(255), nullable=True)
    report_date = Column(Date, nullable=False)
    completion_percentage = Column(Integer, nullable=False, default=100)
    status = Column(String(10), nullable=False)
    checklist_items = Column(JSON, nullable=True)
    source_entity_id = Column(String(36), nullable=True, index=True)
    source_entity_type = Column(String(50), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
