"""
ORM Model for staff members, used to resolve notification recipients.
"""
import uuid
from sqlalchemy import Column, String

from ccpguard.app.core.database import Base


class StaffMemberORM(Base):
    __tablename__ = "staff_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")
