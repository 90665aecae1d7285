"""
Error taxonomy for the CCP compliance workflow.

Validation errors are raised before anything is written. Persistence errors
carry the stage at which the write failed so callers can tell a fatal
primary failure from a degraded success where the check record is already
durable.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CCPWorkflowError(Exception):
    """Base class for all workflow errors."""
    pass


class InvalidMeasurementFormat(CCPWorkflowError):
    """Raised when a recorded value or critical limit has no numeric content."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class InvalidActionType(CCPWorkflowError):
    """Raised when a corrective action is not one of the approved actions."""

    def __init__(self, action_type: Any):
        super().__init__(f"Corrective action '{action_type}' is not an approved action")
        self.action_type = action_type


class AuthorizationError(CCPWorkflowError):
    """Raised when the acting identity lacks the required capability."""
    pass


class IllegalTransition(CCPWorkflowError):
    """Raised when a workflow step is not allowed in the current state."""
    pass


class NotFoundError(CCPWorkflowError):
    entity = "Record"

    def __init__(self, record_id: str):
        super().__init__(f"{self.entity} {record_id} not found")
        self.record_id = record_id


class CCPNotFound(NotFoundError):
    entity = "CCP"


class CheckNotFound(NotFoundError):
    entity = "CCP check"


class IncidentNotFound(NotFoundError):
    entity = "Incident"


class CorrectiveActionNotFound(NotFoundError):
    entity = "Corrective action"


class PersistenceError(CCPWorkflowError):
    """
    A write to the entity store failed.

    stage is one of:
    - primary: the CCP check itself was not recorded; nothing else was attempted
    - secondary: a dependent record failed after the check was durable
    - derived: a summary record failed (never surfaced, logged only)
    """
    PRIMARY = "primary"
    SECONDARY = "secondary"
    DERIVED = "derived"

    def __init__(self, message: str, stage: str = PRIMARY):
        super().__init__(message)
        self.stage = stage


class IncidentLoggingError(PersistenceError):
    """The check was recorded but its incident record could not be written."""

    def __init__(self, check: Dict[str, Any], cause: Exception):
        super().__init__(
            f"Check {check.get('id')} recorded, incident logging failed: {cause}",
            stage=PersistenceError.SECONDARY,
        )
        self.check = check
        self.cause = cause


class ResolutionLinkError(PersistenceError):
    """
    The incident could not be updated with its re-check outcome.

    incident_id is None when the open incident could not even be looked up.
    """

    def __init__(
        self,
        incident_id: Optional[str],
        cause: Exception,
        check: Optional[Dict[str, Any]] = None,
    ):
        if incident_id is None:
            message = f"Open incident lookup failed: {cause}"
        else:
            message = f"Incident {incident_id} resolution update failed: {cause}"
        super().__init__(message, stage=PersistenceError.SECONDARY)
        self.incident_id = incident_id
        self.cause = cause
        self.check = check


class EvidenceUploadError(CCPWorkflowError):
    """The corrective-action evidence photo could not be stored."""
    pass


class NotificationDeliveryError(CCPWorkflowError):
    """A notification could not be delivered to one recipient."""

    def __init__(self, recipient: str, cause: Exception):
        super().__init__(f"Delivery to {recipient} failed: {cause}")
        self.recipient = recipient
        self.cause = cause


class StoreError(Exception):
    """Raised by entity store implementations when a backend call fails."""
    pass


class ImmutableRecordError(StoreError):
    """Raised when an update targets an immutable record or a protected field."""
    pass


@contextmanager
def store_errors(message: str, stage: str = PersistenceError.PRIMARY):
    """Re-raise a StoreError from the enclosed store calls as a PersistenceError."""
    try:
        yield
    except StoreError as e:
        logger.error(f"{message}: {e}")
        raise PersistenceError(f"{message}: {e}", stage=stage) from e
