"""
Unit tests for incident severity classification.
"""
import pytest

from ccpguard.app.schemas.incidents import IncidentSeverity
from ccpguard.app.services.severity import assess_recorded_check, classify_severity


@pytest.mark.parametrize("recorded, expected", [
    (70, IncidentSeverity.MINOR),      # ~6.67%
    (67.5, IncidentSeverity.MINOR),    # exactly 10%
    (67.4, IncidentSeverity.MAJOR),    # just over 10%
    (60, IncidentSeverity.MAJOR),      # exactly 20%
    (59.9, IncidentSeverity.CRITICAL),
    (50, IncidentSeverity.CRITICAL),   # ~33.3%
])
def test_severity_thresholds_against_75(recorded, expected):
    assessment = classify_severity(recorded, 75)
    assert assessment.severity == expected
    assert assessment.requires_manual_review is False


def test_variance_uses_absolute_limit():
    """Frozen storage limits are negative; deviation is still relative to |limit|."""
    assessment = classify_severity(-10, -18)
    assert assessment.variance_pct == pytest.approx(44.44, rel=1e-3)
    assert assessment.severity == IncidentSeverity.CRITICAL


def test_zero_limit_is_critical_and_flagged():
    assessment = classify_severity(3, 0)
    assert assessment.severity == IncidentSeverity.CRITICAL
    assert assessment.variance_pct is None
    assert assessment.requires_manual_review is True


def test_thresholds_can_be_overridden():
    assert classify_severity(70, 75, critical_pct=5, major_pct=2).severity == IncidentSeverity.CRITICAL


def test_assess_recorded_check_parses_stored_strings():
    check = {"recorded_value": "50°C", "critical_limit": "75°C"}
    assert assess_recorded_check(check).severity == IncidentSeverity.CRITICAL
