"""
Critical Control Point definition schema.

CCP definitions are authored out of band; the workflow only reads them.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MeasurementUnit(str, Enum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"
    VISUAL = "visual"
    OTHER = "other"


class LimitOperator(str, Enum):
    """How a recorded value is compared against the critical limit."""
    AT_LEAST = "at_least"          # minimum, e.g. cook core temperature
    AT_MOST = "at_most"            # maximum, e.g. chill or frozen storage
    EQUALS = "equals"
    WITHIN_TOLERANCE = "within_tolerance"


class CorrectiveActionTemplate(BaseModel):
    action: str
    responsible_person: Optional[str] = None
    time_limit: Optional[str] = None


class CCPDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    process_stage: Optional[str] = None
    critical_limit: str
    unit: MeasurementUnit = MeasurementUnit.CELSIUS
    limit_operator: LimitOperator = LimitOperator.AT_LEAST
    tolerance: Optional[float] = None
    monitoring_parameter: Optional[str] = None
    check_frequency: Optional[str] = None
    responsible_role: Optional[str] = None
    corrective_actions: List[CorrectiveActionTemplate] = Field(default_factory=list)
    linked_menu_items: List[str] = Field(default_factory=list)
    is_active: bool = True
