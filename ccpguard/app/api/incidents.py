"""
Incident API Router.

Incidents are legal-hold records: they are never deleted and only accept
resolution updates and manager annotations.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ccpguard.app.api.deps import get_workflow
from ccpguard.app.api.errors import to_http_exception
from ccpguard.app.core.errors import CCPWorkflowError, IncidentNotFound
from ccpguard.app.core.security import Capability, User, get_current_user, require_capability
from ccpguard.app.schemas.incidents import (
    AuditTrailEntry,
    IncidentResponse,
    ManagerNotesRequest,
    ResolutionRequest,
)
from ccpguard.app.services.incident_service import is_open
from ccpguard.app.services.workflow import CCPWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_or_404(workflow: CCPWorkflow, incident_id: str) -> dict:
    incident = await workflow.store.get("IncidentRecord", incident_id)
    if incident is None:
        raise to_http_exception(IncidentNotFound(incident_id))
    return incident


@router.get("/", response_model=List[IncidentResponse])
async def list_incidents(
    ccp_id: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
    open_only: bool = Query(False),
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.READ_INCIDENTS)),
):
    """List incidents, newest first."""
    criteria = {}
    if ccp_id:
        criteria["ccp_id"] = ccp_id
    if severity:
        criteria["incident_severity"] = severity
    incidents = await workflow.store.filter(
        "IncidentRecord", criteria, order_by="-incident_time", limit=100
    )
    if open_only:
        incidents = [i for i in incidents if is_open(i)]
    return incidents


@router.get("/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: str,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.READ_INCIDENTS)),
):
    return await _get_or_404(workflow, incident_id)


@router.get("/{incident_id}/audit-trail")
async def get_audit_trail(
    incident_id: str,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.READ_INCIDENTS)),
):
    """Get the full audit trail for an incident, oldest entry first.

    Each entry is classified as ``human`` or ``automated`` and carries the
    trace_id of the request that wrote it.
    """
    await _get_or_404(workflow, incident_id)
    entries = await workflow.store.filter(
        "IncidentAuditEntry", {"incident_id": incident_id}, order_by="timestamp"
    )
    trail = [AuditTrailEntry.model_validate(e) for e in entries]
    return {"incident_id": incident_id, "audit_trail": trail}


@router.post("/{incident_id}/notes", response_model=IncidentResponse)
async def add_manager_notes(
    incident_id: str,
    payload: ManagerNotesRequest,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    """Attach a manager annotation. Non-manager roles receive 403."""
    try:
        return await workflow.add_manager_notes(incident_id, payload.notes, current_user)
    except CCPWorkflowError as e:
        raise to_http_exception(e)


@router.post("/{incident_id}/resolution", response_model=IncidentResponse)
async def link_resolution(
    incident_id: str,
    payload: ResolutionRequest,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RESOLVE_INCIDENT)),
):
    """Record a re-check outcome on an incident outside the check submission flow."""
    try:
        return await workflow.link_resolution(
            incident_id, payload.resolution_result, payload.recheck_passed, current_user
        )
    except CCPWorkflowError as e:
        raise to_http_exception(e)
