"""
ORM Model for corrective actions taken after a failed CCP check.
"""
import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean

from ccpguard.app.core.database import Base


class CorrectiveActionORM(Base):
    __tablename__ = "corrective_actions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ccp_check_id = Column(String(36), nullable=False, index=True)
    incident_id = Column(String(36), nullable=True, index=True)
    ccp_id = Column(String(36), nullable=False, index=True)
    ccp_name = Column(String(255), nullable=False)

    action_type = Column(String(30), nullable=False)  # re_cook_recheck | discard_batch | stop_service
    action_description = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    photo_url = Column(String(1024), nullable=True)

    initiated_by_id = Column(String(255), nullable=True)
    initiated_by_name = Column(String(255), nullable=True)
    initiated_by_email = Column(String(255), nullable=True)
    initiated_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending | completed
    requires_recheck = Column(Boolean, nullable=False, default=True)
    completed_by_id = Column(String(255), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<CorrectiveAction {self.id} {self.action_type} status={self.status}>"
