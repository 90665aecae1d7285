"""
ORM Model for in-app notifications.

Not part of the audit chain; rows may be lost without affecting compliance.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Boolean

from ccpguard.app.core.database import Base


class NotificationORM(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_email = Column(String(255), nullable=False, index=True)
    recipient_name = Column(String(255), nullable=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), nullable=False, default="alert")
    priority = Column(String(20), nullable=False, default="normal")
    is_read = Column(Boolean, nullable=False, default=False)
    related_entity = Column(String(100), nullable=True)
    related_entity_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
