"""CCP check submission and response schemas."""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ccpguard.app.schemas.incidents import IncidentResponse


class CheckSubmission(BaseModel):
    ccp_id: str
    recorded_value: str = Field(..., min_length=1)
    notes: Optional[str] = None
    # Client-generated idempotency key for retried submissions
    submission_id: Optional[str] = Field(None, max_length=64)


class CheckRecordResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    submission_id: Optional[str] = None
    ccp_id: str
    ccp_name: str
    check_date: date
    check_time: str
    recorded_value: str
    unit: Optional[str] = None
    critical_limit: str
    limit_operator: Optional[str] = None
    status: str
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    staff_email: Optional[str] = None
    notes: Optional[str] = None
    corrective_actions_triggered: Optional[List[Dict[str, Any]]] = None
    blocked_menu_items: Optional[List[str]] = None
    timestamp: datetime


class CheckOutcomeResponse(BaseModel):
    check: CheckRecordResponse
    state: str
    incident: Optional[IncidentResponse] = None
    resolved_incident: Optional[IncidentResponse] = None
    warning: Optional[str] = None
