"""
Measurement parsing and compliance evaluation.

Recorded values and critical limits arrive as free text ("75°C",
"≥ 63°C core", "-18°C or below"). The first signed decimal number in the
string is taken as its numeric value, and the CCP's limit operator decides
whether the measurement is compliant.
"""
import math
import re
from dataclasses import dataclass
from typing import Optional, Union

from ccpguard.app.core.errors import InvalidMeasurementFormat
from ccpguard.app.schemas.ccp import LimitOperator

# A sign only counts when it is not glued to a preceding word or digit,
# so "2-8°C" yields 2 and "-18°C" yields -18.
_NUMBER_RE = re.compile(
    r"(?<![\w.])(?P<sign>[-+−])?\s?(?P<body>\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"
    r"|(?P<bare>\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"
)


def parse_numeric(text: Optional[str]) -> float:
    """Extract the first signed decimal number from ``text``."""
    if text is None:
        raise InvalidMeasurementFormat("No value supplied", raw=text)

    match = _NUMBER_RE.search(str(text))
    if match is None:
        raise InvalidMeasurementFormat(
            f"'{text}' does not contain a numeric value", raw=text
        )

    token = match.group(0).replace("−", "-").replace(" ", "")
    try:
        value = float(token)
    except ValueError:
        raise InvalidMeasurementFormat(f"'{text}' is not a valid number", raw=text)
    if not math.isfinite(value):
        raise InvalidMeasurementFormat(f"'{text}' is not a finite number", raw=text)
    return value


@dataclass(frozen=True)
class Evaluation:
    recorded: float
    limit: float
    operator: LimitOperator
    passed: bool
    tolerance: Optional[float] = None

    @property
    def status(self) -> str:
        return "pass" if self.passed else "fail"


def evaluate(
    recorded_value: str,
    critical_limit: str,
    operator: Union[LimitOperator, str] = LimitOperator.AT_LEAST,
    tolerance: Optional[float] = None,
) -> Evaluation:
    """
    Decide whether a recorded value complies with a critical limit.

    Pure function of its inputs. Raises InvalidMeasurementFormat when either
    string cannot be parsed or the operator is misconfigured.
    """
    recorded = parse_numeric(recorded_value)
    limit = parse_numeric(critical_limit)

    try:
        operator = LimitOperator(operator)
    except ValueError:
        raise InvalidMeasurementFormat(f"Unknown limit operator '{operator}'")

    if operator == LimitOperator.AT_LEAST:
        passed = recorded >= limit
    elif operator == LimitOperator.AT_MOST:
        passed = recorded <= limit
    elif operator == LimitOperator.EQUALS:
        passed = math.isclose(recorded, limit, rel_tol=1e-9, abs_tol=1e-9)
    else:
        if tolerance is None or tolerance < 0:
            raise InvalidMeasurementFormat(
                "within_tolerance requires a non-negative tolerance on the CCP definition"
            )
        passed = abs(recorded - limit) <= tolerance + 1e-9

    return Evaluation(
        recorded=recorded,
        limit=limit,
        operator=operator,
        passed=passed,
        tolerance=tolerance,
    )
