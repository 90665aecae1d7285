"""
Incident severity classification.

Severity is derived from the relative deviation between the recorded value
and the critical limit:

    variance_pct = |recorded - limit| / |limit| * 100

    > critical_pct             -> critical
    > major_pct, <= critical   -> major
    otherwise                  -> minor

A zero limit cannot be expressed as a percentage; such failures are
classified critical and flagged for manual review.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ccpguard.app.core.config import get_settings
from ccpguard.app.schemas.incidents import IncidentSeverity
from ccpguard.app.services.measurement import parse_numeric


@dataclass(frozen=True)
class SeverityAssessment:
    severity: IncidentSeverity
    variance_pct: Optional[float]
    requires_manual_review: bool = False


def classify_severity(
    recorded: float,
    limit: float,
    critical_pct: Optional[float] = None,
    major_pct: Optional[float] = None,
) -> SeverityAssessment:
    settings = get_settings()
    critical_pct = settings.severity_critical_pct if critical_pct is None else critical_pct
    major_pct = settings.severity_major_pct if major_pct is None else major_pct

    if limit == 0:
        return SeverityAssessment(
            severity=IncidentSeverity.CRITICAL,
            variance_pct=None,
            requires_manual_review=True,
        )

    variance_pct = abs(recorded - limit) / abs(limit) * 100
    # 67.5 against 75 is exactly 10% and must stay minor
    rounded = round(variance_pct, 9)

    if rounded > critical_pct:
        severity = IncidentSeverity.CRITICAL
    elif rounded > major_pct:
        severity = IncidentSeverity.MAJOR
    else:
        severity = IncidentSeverity.MINOR

    return SeverityAssessment(severity=severity, variance_pct=variance_pct)


def assess_recorded_check(check: Dict[str, Any]) -> SeverityAssessment:
    """Severity of an already recorded check, re-derived from its stored strings."""
    return classify_severity(
        parse_numeric(check["recorded_value"]),
        parse_numeric(check["critical_limit"]),
    )
