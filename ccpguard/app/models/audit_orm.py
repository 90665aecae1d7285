"""
Audit Trail ORM Model for food-safety incidents.

Append-only log of every automated and human action taken on an incident.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime

from ccpguard.app.core.database import Base


class IncidentAuditEntryORM(Base):
    __tablename__ = "incident_audit_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    incident_id = Column(String(36), index=True, nullable=False)

    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    action = Column(String(100), nullable=False)
    action_type = Column(String(50), nullable=False)  # human | automated
    actor = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)

    trace_id = Column(String(128), nullable=True)

    def __repr__(self):
        return f"<IncidentAuditEntry {self.action} by {self.actor} for {self.incident_id}>"
