"""
CCP Workflow.

Wires the evaluator, audit recorder, notification fan-out, corrective action
coordinator and resolution linker into the operations the API exposes.

    submit_check -> evaluate -> record check (+ incident on fail)
                 -> fan-out to managers on fail (background)
                 -> link resolution on pass when the CCP has an open incident
                    (a replayed passing submission links nothing)
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ccpguard.app.core.errors import (
    CCPNotFound,
    IncidentLoggingError,
    ResolutionLinkError,
    StoreError,
    store_errors,
)
from ccpguard.app.core.logging import ccp_id_ctx
from ccpguard.app.core.security import User
from ccpguard.app.schemas.ccp import CCPDefinition
from ccpguard.app.schemas.incidents import ResolutionResult
from ccpguard.app.services.audit_recorder import AuditRecorder
from ccpguard.app.services.corrective_action_coordinator import CorrectiveActionCoordinator
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.evidence_upload import EvidenceUploader
from ccpguard.app.services.incident_service import (
    add_manager_notes,
    find_incident_resolved_by,
    find_open_incident,
)
from ccpguard.app.services.measurement import evaluate
from ccpguard.app.services.notification_fanout import NotificationFanout, ccp_failure_alert
from ccpguard.app.services.resolution_linker import ResolutionLinker
from ccpguard.app.services.workflow_state import WorkflowEvent, WorkflowState, transition

logger = logging.getLogger(__name__)


@dataclass
class CheckOutcome:
    check: Dict[str, Any]
    state: WorkflowState
    incident: Optional[Dict[str, Any]] = None
    resolved_incident: Optional[Dict[str, Any]] = None


class CCPWorkflow:
    def __init__(
        self,
        store: EntityStore,
        fanout: NotificationFanout,
        uploader: Optional[EvidenceUploader] = None,
    ):
        self.store = store
        self.fanout = fanout
        self.recorder = AuditRecorder(store)
        self.coordinator = CorrectiveActionCoordinator(store, fanout, uploader)
        self.linker = ResolutionLinker(store)

    async def load_ccp(self, ccp_id: str) -> CCPDefinition:
        with store_errors(f"CCP {ccp_id} could not be loaded"):
            record = await self.store.get("CCPDefinition", ccp_id)
        if record is None:
            raise CCPNotFound(ccp_id)
        return CCPDefinition.model_validate(
            {key: value for key, value in record.items() if value is not None}
        )

    async def submit_check(
        self,
        ccp_id: str,
        recorded_value: str,
        user: User,
        notes: Optional[str] = None,
        submission_id: Optional[str] = None,
    ) -> CheckOutcome:
        """
        Evaluate and record one CCP measurement.

        Raises InvalidMeasurementFormat before anything is written, a primary
        PersistenceError when the check itself could not be recorded, and
        IncidentLoggingError / ResolutionLinkError (both carrying the durable
        check) when a dependent write failed.
        """
        ccp_id_ctx.set(ccp_id)
        ccp = await self.load_ccp(ccp_id)
        evaluation = evaluate(recorded_value, ccp.critical_limit, ccp.limit_operator, ccp.tolerance)

        recorded = await self.recorder.record_check(
            ccp, evaluation, recorded_value, user, notes=notes, submission_id=submission_id
        )
        check = recorded.check

        if recorded.failed:
            state = transition(WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_FAILED)
            # A replay only re-alerts when it had to create the missing incident
            if not recorded.replayed or recorded.incident_created:
                self.fanout.dispatch(
                    self.fanout.notify_managers(ccp_failure_alert(check, recorded.incident))
                )
            if recorded.incident_error is not None:
                raise IncidentLoggingError(check, recorded.incident_error)
            return CheckOutcome(check=check, state=state, incident=recorded.incident)

        state = transition(WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_PASSED)
        try:
            if recorded.replayed:
                # A retry reports what the original submission resolved and links nothing
                resolved = await find_incident_resolved_by(self.store, check["id"])
                return CheckOutcome(check=check, state=state, resolved_incident=resolved)
            open_incident = await find_open_incident(self.store, ccp.id)
        except StoreError as e:
            logger.error(f"Check {check['id']} recorded, open incident lookup failed: {e}")
            raise ResolutionLinkError(None, e, check=check) from e
        if open_incident is None:
            return CheckOutcome(check=check, state=state)

        logger.info(f"Check {check['id']} is the re-check for open incident {open_incident['id']}")
        resolved = await self.linker.link(
            open_incident["id"],
            ResolutionResult.RESOLVED.value,
            True,
            user,
            check=check,
        )
        return CheckOutcome(check=check, state=state, resolved_incident=resolved)

    async def record_corrective_action(
        self,
        check_id: str,
        action_type: Any,
        user: User,
        notes: Optional[str] = None,
        photo_filename: Optional[str] = None,
        photo_content: Optional[bytes] = None,
    ) -> Dict[str, Any]:
        return await self.coordinator.record_action(
            check_id, action_type, user,
            notes=notes, photo_filename=photo_filename, photo_content=photo_content,
        )

    async def complete_corrective_action(self, action_id: str, user: User) -> Dict[str, Any]:
        return await self.coordinator.complete_action(action_id, user)

    async def link_resolution(
        self,
        incident_id: str,
        resolution_result: str,
        recheck_passed: bool,
        user: User,
    ) -> Dict[str, Any]:
        return await self.linker.link(incident_id, resolution_result, recheck_passed, user)

    async def add_manager_notes(self, incident_id: str, notes: str, user: User) -> Dict[str, Any]:
        return await add_manager_notes(self.store, incident_id, notes, user)

