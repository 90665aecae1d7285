"""
CCP workflow state machine.

    PENDING_CHECK --CHECK_PASSED--> PASSED
    PENDING_CHECK --CHECK_FAILED--> FAILED
    FAILED / ACTION_RECORDED --ACTION_RECORDED--> ACTION_RECORDED
    FAILED / ACTION_RECORDED --RECHECK_PASSED--> RESOLVED
    FAILED / ACTION_RECORDED --RECHECK_FAILED--> (unchanged)

PASSED and RESOLVED are terminal. The state of a failed check is derived from
its incident and corrective actions, so every step can be validated before
anything is written.
"""
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from ccpguard.app.core.errors import IllegalTransition
from ccpguard.app.services.incident_service import is_open


class WorkflowState(str, Enum):
    PENDING_CHECK = "pending_check"
    PASSED = "passed"
    FAILED = "failed"                    # incident open, no corrective action yet
    ACTION_RECORDED = "action_recorded"  # incident open, remediation chosen
    RESOLVED = "resolved"


class WorkflowEvent(str, Enum):
    CHECK_PASSED = "check_passed"
    CHECK_FAILED = "check_failed"
    ACTION_RECORDED = "action_recorded"
    RECHECK_PASSED = "recheck_passed"
    RECHECK_FAILED = "recheck_failed"


_TRANSITIONS = {
    (WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_PASSED): WorkflowState.PASSED,
    (WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_FAILED): WorkflowState.FAILED,
    (WorkflowState.FAILED, WorkflowEvent.ACTION_RECORDED): WorkflowState.ACTION_RECORDED,
    (WorkflowState.ACTION_RECORDED, WorkflowEvent.ACTION_RECORDED): WorkflowState.ACTION_RECORDED,
    (WorkflowState.FAILED, WorkflowEvent.RECHECK_PASSED): WorkflowState.RESOLVED,
    (WorkflowState.ACTION_RECORDED, WorkflowEvent.RECHECK_PASSED): WorkflowState.RESOLVED,
    (WorkflowState.FAILED, WorkflowEvent.RECHECK_FAILED): WorkflowState.FAILED,
    (WorkflowState.ACTION_RECORDED, WorkflowEvent.RECHECK_FAILED): WorkflowState.ACTION_RECORDED,
}


def transition(state: WorkflowState, event: WorkflowEvent) -> WorkflowState:
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise IllegalTransition(
            f"Cannot apply '{event.value}' to a workflow in state '{state.value}'"
        )


def state_of_check(
    check: Dict[str, Any],
    incident: Optional[Dict[str, Any]],
    actions: Iterable[Dict[str, Any]] = (),
) -> WorkflowState:
    """Derive the workflow state of a recorded check from its dependent records."""
    if check.get("status") == "pass":
        return WorkflowState.PASSED
    if incident is None:
        # Failed check whose incident was never written; reconciliation repairs it
        raise IllegalTransition(
            f"Check {check.get('id')} failed but has no incident record"
        )
    return state_of_incident(incident, actions)


def state_of_incident(
    incident: Dict[str, Any],
    actions: Iterable[Dict[str, Any]] = (),
) -> WorkflowState:
    if not is_open(incident):
        return WorkflowState.RESOLVED
    if any(True for _ in actions):
        return WorkflowState.ACTION_RECORDED
    return WorkflowState.FAILED
