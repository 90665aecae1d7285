"""
Audit Recorder.

Persists the outcome of one CCP check and, when it failed, the legal-hold
incident that references it. Causal order is strict:

1. The CCP check record is written first. If this fails nothing else is
   attempted (primary PersistenceError).
2. A failed check gets exactly one incident record. If that write fails the
   check stays durable; the error is handed back for the caller to surface.
3. The operation report is derived data; failures are logged and swallowed.

Submissions carrying a ``submission_id`` are idempotent: a retried network
call finds the check (and incident) it already wrote instead of creating
duplicates.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ccpguard.app.core.config import get_settings
from ccpguard.app.core.errors import PersistenceError
from ccpguard.app.core.security import User
from ccpguard.app.schemas.ccp import CCPDefinition
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.incident_service import (
    build_incident_record,
    find_incident_for_check,
    log_audit_event,
    utcnow,
)
from ccpguard.app.services.measurement import Evaluation
from ccpguard.app.services.severity import (
    SeverityAssessment,
    assess_recorded_check,
    classify_severity,
)

logger = logging.getLogger(__name__)


@dataclass
class RecordedCheck:
    check: Dict[str, Any]
    incident: Optional[Dict[str, Any]] = None
    incident_error: Optional[Exception] = None
    replayed: bool = False
    incident_created: bool = False

    @property
    def failed(self) -> bool:
        return self.check["status"] == "fail"


class AuditRecorder:
    def __init__(self, store: EntityStore):
        self.store = store

    async def record_check(
        self,
        ccp: CCPDefinition,
        evaluation: Evaluation,
        recorded_value: str,
        user: User,
        notes: Optional[str] = None,
        submission_id: Optional[str] = None,
    ) -> RecordedCheck:
        check, replayed = await self._write_check(
            ccp, evaluation, recorded_value, user, notes, submission_id
        )
        recorded = RecordedCheck(check=check, replayed=replayed)

        if recorded.failed:
            # Stored status wins over a replayed evaluation
            assessment = (
                classify_severity(evaluation.recorded, evaluation.limit)
                if not replayed else None
            )
            try:
                recorded.incident, recorded.incident_created = await self._write_incident(
                    check, assessment, user
                )
            except Exception as e:
                logger.error(f"Check {check['id']} recorded but incident logging failed: {e}")
                recorded.incident_error = e

        if not replayed:
            await self._write_operation_report(ccp, check)

        return recorded

    async def _write_check(
        self,
        ccp: CCPDefinition,
        evaluation: Evaluation,
        recorded_value: str,
        user: User,
        notes: Optional[str],
        submission_id: Optional[str],
    ):
        if submission_id:
            existing = await self._find_submission(submission_id)
            if existing:
                logger.info(f"Submission {submission_id} already recorded as check {existing['id']}")
                return existing, True

        now = utcnow()
        failed = not evaluation.passed
        record = {
            "submission_id": submission_id,
            "ccp_id": ccp.id,
            "ccp_name": ccp.name,
            "check_date": now.date(),
            "check_time": now.strftime("%H:%M"),
            "recorded_value": recorded_value,
            "unit": ccp.unit.value,
            "critical_limit": ccp.critical_limit,
            "limit_operator": evaluation.operator.value,
            "status": evaluation.status,
            "staff_id": user.id,
            "staff_name": user.display_name,
            "staff_email": user.email,
            "notes": notes,
            "corrective_actions_triggered": [
                {
                    "action": template.action,
                    "responsible_person": template.responsible_person,
                    "time_limit": template.time_limit,
                    "status": "pending",
                }
                for template in ccp.corrective_actions
            ] if failed else None,
            "blocked_menu_items": list(ccp.linked_menu_items) if failed else None,
            "timestamp": now,
        }

        try:
            check = await self.store.create("CCPCheckRecord", record)
        except Exception as e:
            # A concurrent retry may have won the unique submission_id
            if submission_id:
                existing = await self._find_submission(submission_id)
                if existing:
                    return existing, True
            logger.error(f"CCP check for {ccp.name} could not be recorded: {e}")
            raise PersistenceError(
                f"CCP check for {ccp.name} could not be recorded: {e}",
                stage=PersistenceError.PRIMARY,
            ) from e

        logger.info(
            f"CCP check {check['id']} recorded: {ccp.name} = {recorded_value} "
            f"({evaluation.status}, limit {ccp.critical_limit})"
        )
        return check, False

    async def _find_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        try:
            rows = await self.store.filter(
                "CCPCheckRecord", {"submission_id": submission_id}, limit=1
            )
        except Exception as e:
            logger.warning(f"Idempotency lookup for submission {submission_id} failed: {e}")
            return None
        return rows[0] if rows else None

    async def _write_incident(
        self,
        check: Dict[str, Any],
        assessment: Optional[SeverityAssessment],
        user: User,
    ):
        existing = await find_incident_for_check(self.store, check["id"])
        if existing:
            return existing, False

        if assessment is None:
            assessment = assess_recorded_check(check)

        try:
            incident = await self.store.create(
                "IncidentRecord", build_incident_record(check, assessment, user)
            )
        except Exception:
            existing = await find_incident_for_check(self.store, check["id"])
            if existing:
                return existing, False
            raise

        logger.warning(
            f"Food safety incident {incident['id']} logged for check {check['id']} "
            f"({check['ccp_name']}, severity={incident['incident_severity']})"
        )
        await log_audit_event(
            self.store, incident["id"],
            action="INCIDENT_LOGGED",
            action_type="automated",
            actor=user.email or user.id,
            details=(
                f"{check['ccp_name']} failed: {check['recorded_value']} "
                f"(limit {check['critical_limit']}), severity {incident['incident_severity']}"
            ),
        )
        return incident, True

    async def _write_operation_report(self, ccp: CCPDefinition, check: Dict[str, Any]) -> None:
        try:
            await self.store.create("OperationReport", {
                "report_type": "CCP",
                "location_id": get_settings().default_location_id,
                "staff_id": check.get("staff_id"),
                "staff_name": check.get("staff_name"),
                "staff_email": check.get("staff_email"),
                "report_date": check["check_date"],
                "completion_percentage": 100,
                "status": check["status"],
                "checklist_items": [{
                    "item_id": ccp.id,
                    "item_name": ccp.name,
                    "answer": check["recorded_value"],
                }],
                "source_entity_id": check["id"],
                "source_entity_type": "CCPCheckRecord",
                "timestamp": utcnow(),
            })
        except Exception as e:
            logger.warning(f"Operation report for check {check['id']} not written: {e}")
