"""
Corrective Action Coordinator.

Records the remediation chosen for a failed CCP check. Only the approved
actions can be recorded, the failed check must still have an open incident,
and every corrective action requires a re-check. The incident itself is
closed later by the Resolution Linker when that re-check passes.
"""
import logging
from typing import Any, Dict, Optional

from ccpguard.app.core.errors import (
    CheckNotFound,
    CorrectiveActionNotFound,
    EvidenceUploadError,
    IllegalTransition,
    InvalidActionType,
    PersistenceError,
    store_errors,
)
from ccpguard.app.core.security import User
from ccpguard.app.schemas.corrective_actions import APPROVED_ACTIONS, ActionStatus, ActionType
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.evidence_upload import EvidenceUploader
from ccpguard.app.services.incident_service import find_incident_for_check, log_audit_event, utcnow
from ccpguard.app.services.notification_fanout import NotificationFanout, stop_service_alert
from ccpguard.app.services.workflow_state import WorkflowEvent, state_of_check, transition

logger = logging.getLogger(__name__)


def validate_action_type(action_type: Any) -> ActionType:
    try:
        return ActionType(action_type)
    except ValueError:
        raise InvalidActionType(action_type)


class CorrectiveActionCoordinator:
    def __init__(
        self,
        store: EntityStore,
        fanout: NotificationFanout,
        uploader: Optional[EvidenceUploader] = None,
    ):
        self.store = store
        self.fanout = fanout
        self.uploader = uploader

    async def record_action(
        self,
        check_id: str,
        action_type: Any,
        user: User,
        notes: Optional[str] = None,
        photo_filename: Optional[str] = None,
        photo_content: Optional[bytes] = None,
    ) -> Dict[str, Any]:
        action = validate_action_type(action_type)

        with store_errors(f"Check {check_id} could not be loaded"):
            check = await self.store.get("CCPCheckRecord", check_id)
        if check is None:
            raise CheckNotFound(check_id)
        if check["status"] != "fail":
            raise IllegalTransition(
                f"Check {check_id} passed; corrective actions apply only to failed checks"
            )

        with store_errors(f"Workflow state of check {check_id} could not be loaded"):
            incident = await find_incident_for_check(self.store, check_id)
            previous = await self.store.filter("CorrectiveAction", {"ccp_check_id": check_id})
        transition(state_of_check(check, incident, previous), WorkflowEvent.ACTION_RECORDED)

        photo_url = None
        if photo_content is not None:
            photo_url = await self._upload(photo_filename or "evidence.jpg", photo_content)

        record = {
            "ccp_check_id": check["id"],
            "incident_id": incident["id"],
            "ccp_id": check["ccp_id"],
            "ccp_name": check["ccp_name"],
            "action_type": action.value,
            "action_description": APPROVED_ACTIONS[action],
            "initiated_by_id": user.id,
            "initiated_by_name": user.full_name,
            "initiated_by_email": user.email,
            "initiated_at": utcnow(),
            "photo_url": photo_url,
            "notes": notes,
            "status": ActionStatus.PENDING.value,
            "requires_recheck": True,
        }
        try:
            created = await self.store.create("CorrectiveAction", record)
        except Exception as e:
            logger.error(f"Corrective action for check {check_id} could not be recorded: {e}")
            raise PersistenceError(
                f"Corrective action for check {check_id} could not be recorded: {e}",
                stage=PersistenceError.SECONDARY,
            ) from e

        logger.info(
            f"Corrective action {created['id']} ({action.value}) recorded for check {check_id} "
            f"by {user.id}"
        )
        await log_audit_event(
            self.store, incident["id"],
            action="CORRECTIVE_ACTION_RECORDED",
            action_type="human",
            actor=user.email or user.id,
            details=APPROVED_ACTIONS[action] + (f": {notes}" if notes else ""),
        )

        if action == ActionType.STOP_SERVICE:
            self.fanout.dispatch(
                self.fanout.notify_operations(stop_service_alert(check, created, user))
            )

        return created

    async def _upload(self, filename: str, content: bytes) -> str:
        if self.uploader is None:
            raise EvidenceUploadError("No evidence uploader configured")
        try:
            uploaded = await self.uploader.upload(filename, content)
        except EvidenceUploadError:
            raise
        except Exception as e:
            raise EvidenceUploadError(f"Evidence upload failed: {e}") from e
        return uploaded["url"]

    async def complete_action(self, action_id: str, user: User) -> Dict[str, Any]:
        """Mark remediation work as finished (pending -> completed)."""
        with store_errors(f"Corrective action {action_id} could not be loaded"):
            action = await self.store.get("CorrectiveAction", action_id)
        if action is None:
            raise CorrectiveActionNotFound(action_id)
        if action["status"] != ActionStatus.PENDING.value:
            raise IllegalTransition(f"Corrective action {action_id} is already {action['status']}")

        with store_errors(
            f"Corrective action {action_id} completion not saved", stage=PersistenceError.SECONDARY
        ):
            updated = await self.store.update("CorrectiveAction", action_id, {
                "status": ActionStatus.COMPLETED.value,
                "completed_by_id": user.id,
                "completed_at": utcnow(),
            })
        if action.get("incident_id"):
            await log_audit_event(
                self.store, action["incident_id"],
                action="CORRECTIVE_ACTION_COMPLETED",
                action_type="human",
                actor=user.email or user.id,
                details=f"{action['action_description']} completed; re-check required",
            )
        return updated
