"""
Incident Record Schemas and Enums.

Incident records are the legal-hold half of the food-safety audit chain.
"""
from enum import Enum
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class IncidentSeverity(str, Enum):
    CRITICAL = "critical"  # > 20% deviation from the limit
    MAJOR = "major"        # > 10% and <= 20%
    MINOR = "minor"        # <= 10%


class ResolutionResult(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class IncidentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    ccp_check_id: str
    ccp_id: str
    ccp_name: str
    failure_value: str
    critical_limit: str
    unit: Optional[str] = None
    incident_time: datetime
    detected_by_id: Optional[str] = None
    detected_by_name: Optional[str] = None
    detected_by_email: Optional[str] = None
    corrective_action_type: str
    corrective_action_description: Optional[str] = None
    resolution_result: str
    recheck_passed: Optional[bool] = None
    resolved_by_check_id: Optional[str] = None
    action_taken_by_id: Optional[str] = None
    action_taken_by_name: Optional[str] = None
    action_time: Optional[datetime] = None
    blocked_menu_items: List[str] = Field(default_factory=list)
    incident_severity: IncidentSeverity
    requires_manual_review: bool = False
    is_legal_hold: bool
    manager_notes: Optional[str] = None
    manager_notes_by_email: Optional[str] = None
    manager_notes_time: Optional[datetime] = None


class ManagerNotesRequest(BaseModel):
    notes: str = Field(..., min_length=1)


class ResolutionRequest(BaseModel):
    """Request body for linking a re-check outcome onto an incident."""
    resolution_result: str = ResolutionResult.RESOLVED.value
    recheck_passed: bool


class AuditTrailEntry(BaseModel):
    timestamp: datetime
    action: str
    action_type: str
    actor: str
    details: Optional[str] = None
    trace_id: Optional[str] = None
