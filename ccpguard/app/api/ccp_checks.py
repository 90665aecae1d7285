"""
CCP Check API Router.

Submitting a check is the entry point of the food-safety workflow. A failed
check is always recorded before anything else happens; when a dependent
write fails afterwards the response is 207 with the durable check and a
warning instead of an error.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ccpguard.app.api.deps import get_workflow
from ccpguard.app.api.errors import to_http_exception
from ccpguard.app.core.errors import CCPWorkflowError, IncidentLoggingError, ResolutionLinkError
from ccpguard.app.core.security import Capability, User, require_capability
from ccpguard.app.schemas.checks import CheckOutcomeResponse, CheckRecordResponse, CheckSubmission
from ccpguard.app.services.workflow import CCPWorkflow
from ccpguard.app.services.workflow_state import WorkflowState

logger = logging.getLogger(__name__)
router = APIRouter()


def _degraded(check: dict, state: WorkflowState, warning: str) -> JSONResponse:
    body = CheckOutcomeResponse(
        check=CheckRecordResponse.model_validate(check),
        state=state.value,
        warning=warning,
    )
    return JSONResponse(
        status_code=status.HTTP_207_MULTI_STATUS,
        content=jsonable_encoder(body),
    )


@router.post("/", response_model=CheckOutcomeResponse, status_code=201)
async def submit_check(
    payload: CheckSubmission,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CHECK)),
):
    """Evaluate a measurement and record it, escalating failures into incidents."""
    try:
        outcome = await workflow.submit_check(
            payload.ccp_id,
            payload.recorded_value,
            current_user,
            notes=payload.notes,
            submission_id=payload.submission_id,
        )
    except IncidentLoggingError as e:
        return _degraded(e.check, WorkflowState.FAILED, "Check recorded, incident logging failed")
    except ResolutionLinkError as e:
        if e.check is None:
            raise to_http_exception(e)
        if e.incident_id is None:
            warning = "Check recorded, open incident lookup failed; no incident was resolved"
        else:
            warning = f"Check recorded, incident {e.incident_id} could not be resolved and remains open"
        return _degraded(e.check, WorkflowState.PASSED, warning)
    except CCPWorkflowError as e:
        raise to_http_exception(e)

    return CheckOutcomeResponse(
        check=CheckRecordResponse.model_validate(outcome.check),
        state=outcome.state.value,
        incident=outcome.incident,
        resolved_incident=outcome.resolved_incident,
    )


@router.get("/", response_model=List[CheckRecordResponse])
async def list_checks(
    ccp_id: Optional[str] = Query(None),
    check_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CHECK)),
):
    """List recorded checks, newest first."""
    criteria = {}
    if ccp_id:
        criteria["ccp_id"] = ccp_id
    if check_date:
        criteria["check_date"] = check_date
    return await workflow.store.filter(
        "CCPCheckRecord", criteria, order_by="-timestamp", limit=limit
    )
