"""
Incident record helpers shared by the audit recorder, resolution linker and
reconciliation sweep.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ccpguard.app.core.errors import (
    AuthorizationError,
    IncidentNotFound,
    PersistenceError,
    store_errors,
)
from ccpguard.app.core.logging import correlation_id_ctx
from ccpguard.app.core.security import Capability, User, has_capability
from ccpguard.app.schemas.incidents import ResolutionResult
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.severity import SeverityAssessment

logger = logging.getLogger(__name__)

_UNIT_SUFFIX = {
    "celsius": "°C",
    "fahrenheit": "°F",
    "visual": " (visual)",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_failure_value(recorded_value: str, unit: Optional[str]) -> str:
    suffix = _UNIT_SUFFIX.get(unit or "", "")
    if suffix and recorded_value.rstrip().endswith(suffix.strip()):
        return recorded_value
    return f"{recorded_value}{suffix}"


def build_incident_record(
    check: Dict[str, Any],
    assessment: SeverityAssessment,
    detected_by: Optional[User] = None,
) -> Dict[str, Any]:
    """Incident row for a failing check. Always under legal hold."""
    return {
        "ccp_check_id": check["id"],
        "ccp_id": check["ccp_id"],
        "ccp_name": check["ccp_name"],
        "failure_value": format_failure_value(check["recorded_value"], check.get("unit")),
        "critical_limit": check["critical_limit"],
        "unit": check.get("unit"),
        "incident_time": utcnow(),
        "detected_by_id": detected_by.id if detected_by else check.get("staff_id"),
        "detected_by_name": detected_by.display_name if detected_by else check.get("staff_name"),
        "detected_by_email": detected_by.email if detected_by else check.get("staff_email"),
        "corrective_action_type": "pending",
        "corrective_action_description": "Awaiting corrective action",
        "resolution_result": ResolutionResult.PENDING.value,
        "recheck_passed": None,
        "blocked_menu_items": list(check.get("blocked_menu_items") or []),
        "incident_severity": assessment.severity.value,
        "requires_manual_review": assessment.requires_manual_review,
        "is_legal_hold": True,
    }


def is_open(incident: Dict[str, Any]) -> bool:
    """An incident closes only when a resolution follows a passing re-check."""
    resolved = incident.get("resolution_result") not in (None, ResolutionResult.PENDING.value)
    return not (resolved and incident.get("recheck_passed") is True)


async def find_incident_for_check(store: EntityStore, check_id: str) -> Optional[Dict[str, Any]]:
    incidents = await store.filter("IncidentRecord", {"ccp_check_id": check_id}, limit=1)
    return incidents[0] if incidents else None


async def find_incident_resolved_by(store: EntityStore, check_id: str) -> Optional[Dict[str, Any]]:
    incidents = await store.filter("IncidentRecord", {"resolved_by_check_id": check_id}, limit=1)
    return incidents[0] if incidents else None


async def find_open_incident(store: EntityStore, ccp_id: str) -> Optional[Dict[str, Any]]:
    """Most recent incident for the CCP that is still open."""
    incidents = await store.filter(
        "IncidentRecord", {"ccp_id": ccp_id}, order_by="-incident_time"
    )
    return next((i for i in incidents if is_open(i)), None)


async def list_open_incidents(store: EntityStore) -> List[Dict[str, Any]]:
    incidents = await store.filter("IncidentRecord", order_by="-incident_time")
    return [i for i in incidents if is_open(i)]


async def log_audit_event(
    store: EntityStore,
    incident_id: str,
    action: str,
    action_type: str,
    actor: str,
    details: Optional[str] = None,
) -> None:
    """Append an audit entry. Derived data: a failed write is logged, not raised."""
    try:
        await store.create("IncidentAuditEntry", {
            "incident_id": incident_id,
            "timestamp": utcnow(),
            "action": action,
            "action_type": action_type,
            "actor": actor,
            "details": details,
            "trace_id": correlation_id_ctx.get(),
        })
    except Exception as e:
        logger.warning(f"Audit entry {action} for incident {incident_id} not written: {e}")


async def add_manager_notes(
    store: EntityStore,
    incident_id: str,
    notes: str,
    user: User,
) -> Dict[str, Any]:
    """Attach a manager annotation. Requires the ANNOTATE_INCIDENT capability."""
    if not has_capability(user, Capability.ANNOTATE_INCIDENT):
        raise AuthorizationError("Only managers can add notes to incidents")

    with store_errors(f"Incident {incident_id} could not be loaded"):
        incident = await store.get("IncidentRecord", incident_id)
    if incident is None:
        raise IncidentNotFound(incident_id)

    with store_errors(
        f"Manager notes for incident {incident_id} not saved", stage=PersistenceError.SECONDARY
    ):
        updated = await store.update("IncidentRecord", incident_id, {
            "manager_notes": notes,
            "manager_notes_by_id": user.id,
            "manager_notes_by_email": user.email,
            "manager_notes_time": utcnow(),
        })
    logger.info(f"Manager notes added to incident {incident_id} by {user.id}")
    await log_audit_event(
        store, incident_id,
        action="MANAGER_NOTE_ADDED",
        action_type="human",
        actor=user.email or user.id,
        details=notes[:500],
    )
    return updated
