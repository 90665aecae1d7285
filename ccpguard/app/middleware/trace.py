import time
import uuid
import logging

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from ccpguard.app.core.logging import correlation_id_ctx, event_id_ctx, log_extra

logger = logging.getLogger(__name__)


def _log_request(request: Request, status_code: int, started: float, **fields) -> None:
    # 207 is a check that was recorded while a dependent write failed
    if status_code >= 500:
        level = logging.ERROR
    elif status_code == status.HTTP_207_MULTI_STATUS:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        f"{request.method} {request.url.path} -> {status_code}",
        extra=log_extra(
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.time() - started) * 1000, 2),
            client_ip=request.client.host if request.client else None,
            **fields,
        ),
        exc_info=status_code >= 500 and "error" in fields,
    )


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Sets the correlation ID and event ID for every request so that a check
    submission and its incident, report and notification writes can be
    matched in the logs and the incident audit trail. Tablets that retry a
    submission send the same X-Correlation-ID, so retries share one trace.
    """
    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        event_id = str(uuid.uuid4())
        correlation_id_ctx.set(correlation_id)
        event_id_ctx.set(event_id)
        started = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            _log_request(request, status.HTTP_500_INTERNAL_SERVER_ERROR, started, error=str(e))
            raise

        _log_request(request, response.status_code, started)
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Event-ID"] = event_id
        return response
