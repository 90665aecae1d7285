import json
import logging

from ccpguard.app.core.logging import JSONFormatter, ccp_id_ctx, correlation_id_ctx, log_extra


def _record(message, **extra):
    record = logging.LogRecord("ccpguard.test", logging.WARNING, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_request_context():
    cid_token = correlation_id_ctx.set("corr-1")
    ccp_token = ccp_id_ctx.set("ccp-cook-chicken")
    try:
        line = json.loads(JSONFormatter().format(_record("Food safety incident logged")))
    finally:
        correlation_id_ctx.reset(cid_token)
        ccp_id_ctx.reset(ccp_token)

    assert line["message"] == "Food safety incident logged"
    assert line["level"] == "WARNING"
    assert line["correlation_id"] == "corr-1"
    assert line["ccp_id"] == "ccp-cook-chicken"
    assert "staff_id" not in line


def test_formatter_merges_extra_fields():
    record = _record("POST /api/v1/ccp-checks/ -> 207", **log_extra(status_code=207))
    line = json.loads(JSONFormatter().format(record))
    assert line["status_code"] == 207
    assert line["service"] == "ccpguard"
