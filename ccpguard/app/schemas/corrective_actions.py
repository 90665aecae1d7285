"""Corrective action schemas and the approved action catalogue."""
import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionType(str, Enum):
    RE_COOK_RECHECK = "re_cook_recheck"
    DISCARD_BATCH = "discard_batch"
    STOP_SERVICE = "stop_service"


class ActionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# Labels recorded as action_description
APPROVED_ACTIONS = {
    ActionType.RE_COOK_RECHECK: "Re-cook & Re-check",
    ActionType.DISCARD_BATCH: "Discard batch",
    ActionType.STOP_SERVICE: "Stop service & inform manager",
}


class EvidencePhoto(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_base64: str

    @field_validator("content_base64")
    @classmethod
    def _valid_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("content_base64 is not valid base64")
        return value

    def content(self) -> bytes:
        return base64.b64decode(self.content_base64)


class CorrectiveActionCreate(BaseModel):
    ccp_check_id: str
    # Validated by the coordinator so unknown values map to InvalidActionType
    action_type: str
    notes: Optional[str] = None
    photo: Optional[EvidencePhoto] = None


class CorrectiveActionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    ccp_check_id: str
    incident_id: Optional[str] = None
    ccp_id: str
    ccp_name: str
    action_type: ActionType
    action_description: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    initiated_by_id: Optional[str] = None
    initiated_by_name: Optional[str] = None
    initiated_at: datetime
    status: ActionStatus
    requires_recheck: bool
    completed_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None
