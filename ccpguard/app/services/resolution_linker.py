"""
Resolution Linker.

Closes the loop on a food-safety incident by writing the re-check outcome
back onto the incident record. Together with manager annotation this is the
only mutation an incident accepts after it is created.
"""
import logging
from typing import Any, Dict, Optional

from ccpguard.app.core.errors import IncidentNotFound, ResolutionLinkError, StoreError
from ccpguard.app.core.security import User
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.incident_service import log_audit_event, utcnow
from ccpguard.app.services.workflow_state import WorkflowEvent, state_of_incident, transition

logger = logging.getLogger(__name__)


class ResolutionLinker:
    def __init__(self, store: EntityStore):
        self.store = store

    async def link(
        self,
        incident_id: str,
        resolution_result: str,
        recheck_passed: bool,
        user: User,
        check: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Record the outcome of a re-check on an incident.

        ``check`` is the passing re-check when the link is triggered by a check
        submission; it is attached to any ResolutionLinkError so the caller
        still sees the durable check.
        """
        try:
            incident = await self.store.get("IncidentRecord", incident_id)
            actions = []
            if incident is not None:
                actions = await self.store.filter(
                    "CorrectiveAction",
                    {"ccp_check_id": incident["ccp_check_id"]},
                    order_by="-initiated_at",
                )
        except StoreError as e:
            logger.error(f"Incident {incident_id} could not be loaded for resolution: {e}")
            raise ResolutionLinkError(incident_id, e, check=check) from e
        if incident is None:
            raise IncidentNotFound(incident_id)

        event = WorkflowEvent.RECHECK_PASSED if recheck_passed else WorkflowEvent.RECHECK_FAILED
        transition(state_of_incident(incident, actions), event)

        update = {
            "resolution_result": resolution_result,
            "recheck_passed": recheck_passed,
            "action_taken_by_id": user.id,
            "action_taken_by_name": user.display_name,
            "action_taken_by_email": user.email,
            "action_time": utcnow(),
        }
        if check and recheck_passed:
            update["resolved_by_check_id"] = check["id"]
        if actions:
            update["corrective_action_type"] = actions[0]["action_type"]
            update["corrective_action_description"] = actions[0].get("action_description")

        try:
            updated = await self.store.update("IncidentRecord", incident_id, update)
        except Exception as e:
            logger.error(f"Incident {incident_id} left open, resolution update failed: {e}")
            raise ResolutionLinkError(incident_id, e, check=check) from e

        logger.info(
            f"Incident {incident_id} resolution linked: {resolution_result} "
            f"(recheck_passed={recheck_passed})"
        )
        details = f"Resolution '{resolution_result}', re-check {'passed' if recheck_passed else 'failed'}"
        if check:
            details += f" (check {check['id']}: {check['recorded_value']})"
        await log_audit_event(
            self.store, incident_id,
            action="RESOLUTION_LINKED",
            action_type="automated" if check else "human",
            actor=user.email or user.id,
            details=details,
        )
        return updated
