import pytest

from ccpguard.app.core.errors import IllegalTransition
from ccpguard.app.services.incident_service import is_open
from ccpguard.app.services.workflow_state import (
    WorkflowEvent,
    WorkflowState,
    state_of_check,
    state_of_incident,
    transition,
)


def test_allowed_transitions():
    assert transition(WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_PASSED) == WorkflowState.PASSED
    assert transition(WorkflowState.PENDING_CHECK, WorkflowEvent.CHECK_FAILED) == WorkflowState.FAILED
    assert transition(WorkflowState.FAILED, WorkflowEvent.ACTION_RECORDED) == WorkflowState.ACTION_RECORDED
    assert transition(WorkflowState.ACTION_RECORDED, WorkflowEvent.RECHECK_PASSED) == WorkflowState.RESOLVED
    assert transition(WorkflowState.FAILED, WorkflowEvent.RECHECK_FAILED) == WorkflowState.FAILED


@pytest.mark.parametrize("state, event", [
    (WorkflowState.PASSED, WorkflowEvent.ACTION_RECORDED),
    (WorkflowState.RESOLVED, WorkflowEvent.ACTION_RECORDED),
    (WorkflowState.RESOLVED, WorkflowEvent.RECHECK_PASSED),
    (WorkflowState.PENDING_CHECK, WorkflowEvent.RECHECK_PASSED),
    (WorkflowState.FAILED, WorkflowEvent.CHECK_FAILED),
])
def test_illegal_transitions_raise(state, event):
    with pytest.raises(IllegalTransition):
        transition(state, event)


def test_state_derived_from_records():
    incident = {"id": "inc-1", "resolution_result": "pending", "recheck_passed": None}
    assert state_of_incident(incident) == WorkflowState.FAILED
    assert state_of_incident(incident, [{"id": "act-1"}]) == WorkflowState.ACTION_RECORDED

    resolved = dict(incident, resolution_result="resolved", recheck_passed=True)
    assert state_of_incident(resolved) == WorkflowState.RESOLVED


def test_escalated_incident_stays_open():
    escalated = {"resolution_result": "escalated", "recheck_passed": False}
    assert is_open(escalated) is True
    assert state_of_incident(escalated) == WorkflowState.FAILED


def test_failed_check_without_incident_has_no_state():
    with pytest.raises(IllegalTransition):
        state_of_check({"id": "chk-1", "status": "fail"}, None)
    assert state_of_check({"id": "chk-2", "status": "pass"}, None) == WorkflowState.PASSED
