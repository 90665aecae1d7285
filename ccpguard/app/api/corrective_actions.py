"""
Corrective Action API Router.

Only the approved actions can be recorded. An unknown action type is a 422,
recording against a passed check or a resolved incident is a 409.
"""
import logging

from fastapi import APIRouter, Depends

from ccpguard.app.api.deps import get_workflow
from ccpguard.app.api.errors import to_http_exception
from ccpguard.app.core.errors import CCPWorkflowError
from ccpguard.app.core.security import Capability, User, require_capability
from ccpguard.app.schemas.corrective_actions import CorrectiveActionCreate, CorrectiveActionResponse
from ccpguard.app.services.workflow import CCPWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=CorrectiveActionResponse, status_code=201)
async def record_corrective_action(
    payload: CorrectiveActionCreate,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CORRECTIVE_ACTION)),
):
    photo = payload.photo
    try:
        return await workflow.record_corrective_action(
            payload.ccp_check_id,
            payload.action_type,
            current_user,
            notes=payload.notes,
            photo_filename=photo.filename if photo else None,
            photo_content=photo.content() if photo else None,
        )
    except CCPWorkflowError as e:
        raise to_http_exception(e)


@router.post("/{action_id}/complete", response_model=CorrectiveActionResponse)
async def complete_corrective_action(
    action_id: str,
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CORRECTIVE_ACTION)),
):
    """Mark remediation work as finished. The incident stays open until a re-check passes."""
    try:
        return await workflow.complete_corrective_action(action_id, current_user)
    except CCPWorkflowError as e:
        raise to_http_exception(e)
