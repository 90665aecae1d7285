"""Translation of workflow errors into HTTP errors."""
import logging

from fastapi import HTTPException, status

from ccpguard.app.core.errors import (
    AuthorizationError,
    CCPWorkflowError,
    EvidenceUploadError,
    IllegalTransition,
    InvalidActionType,
    InvalidMeasurementFormat,
    NotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (InvalidMeasurementFormat, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidActionType, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (IllegalTransition, status.HTTP_409_CONFLICT),
    (EvidenceUploadError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(error: CCPWorkflowError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code >= 500:
        logger.error(f"{type(error).__name__}: {error}")
    return HTTPException(status_code=status_code, detail=str(error))
