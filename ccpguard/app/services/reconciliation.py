"""
Reconciliation sweep for abandoned check submissions.

A failed check is durable before its incident is written, so an abandoned
or interrupted submission can leave a failed check with no incident. The
sweep finds those checks and writes the missing incident from the check's
own snapshot. Running it twice creates nothing the second time.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from ccpguard.app.core.errors import InvalidMeasurementFormat
from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.incident_service import (
    build_incident_record,
    find_incident_for_check,
    log_audit_event,
)
from ccpguard.app.services.severity import assess_recorded_check

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    scanned: int = 0
    created: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


async def reconcile_orphaned_failures(store: EntityStore) -> ReconciliationReport:
    report = ReconciliationReport()
    failed_checks = await store.filter("CCPCheckRecord", {"status": "fail"}, order_by="timestamp")

    for check in failed_checks:
        report.scanned += 1
        if await find_incident_for_check(store, check["id"]):
            continue

        try:
            assessment = assess_recorded_check(check)
        except InvalidMeasurementFormat as e:
            logger.error(f"Orphaned check {check['id']} cannot be reconciled: {e}")
            report.failed.append(check["id"])
            continue

        try:
            incident = await store.create("IncidentRecord", build_incident_record(check, assessment))
        except Exception as e:
            logger.error(f"Incident for orphaned check {check['id']} not written: {e}")
            report.failed.append(check["id"])
            continue

        report.created.append(incident["id"])
        logger.warning(
            f"Reconciled orphaned check {check['id']} into incident {incident['id']} "
            f"(severity={incident['incident_severity']})"
        )
        await log_audit_event(
            store, incident["id"],
            action="INCIDENT_RECONCILED",
            action_type="automated",
            actor="reconciliation",
            details=f"Incident re-created for failed check {check['id']}",
        )

    logger.info(
        f"Reconciliation scanned {report.scanned} failed checks, "
        f"created {len(report.created)} incidents, {len(report.failed)} failures"
    )
    return report
