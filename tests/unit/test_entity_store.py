"""
Unit tests for the entity store implementations.

The SQL store runs against in-memory SQLite; the in-memory store is held to
the same audit-chain rules.
"""
from datetime import date, datetime, timezone

import pytest

from ccpguard.app.core.errors import ImmutableRecordError, StoreError
from ccpguard.app.services.entity_store import InMemoryEntityStore


def _check(**overrides):
    record = {
        "ccp_id": "ccp-1",
        "ccp_name": "Chicken core temperature",
        "check_date": date(2024, 5, 1),
        "check_time": "12:30",
        "recorded_value": "70°C",
        "unit": "celsius",
        "critical_limit": "75°C",
        "limit_operator": "at_least",
        "status": "fail",
        "staff_id": "staff-1",
        "timestamp": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    }
    record.update(overrides)
    return record


def _incident(check_id, **overrides):
    record = {
        "ccp_check_id": check_id,
        "ccp_id": "ccp-1",
        "ccp_name": "Chicken core temperature",
        "failure_value": "70°C",
        "critical_limit": "75°C",
        "incident_time": datetime(2024, 5, 1, 12, 31, tzinfo=timezone.utc),
        "corrective_action_type": "pending",
        "resolution_result": "pending",
        "incident_severity": "minor",
        "is_legal_hold": True,
    }
    record.update(overrides)
    return record


@pytest.mark.asyncio
async def test_sql_create_get_filter(sql_store):
    created = await sql_store.create("CCPCheckRecord", _check())
    assert created["id"]
    assert created["timestamp"].tzinfo is not None

    fetched = await sql_store.get("CCPCheckRecord", created["id"])
    assert fetched["recorded_value"] == "70°C"
    assert fetched["check_date"] == date(2024, 5, 1)

    await sql_store.create("CCPCheckRecord", _check(status="pass", recorded_value="80°C"))
    failed = await sql_store.filter("CCPCheckRecord", {"status": "fail"})
    assert [c["id"] for c in failed] == [created["id"]]

    assert await sql_store.get("CCPCheckRecord", "missing") is None


@pytest.mark.asyncio
async def test_sql_filter_order_and_limit(sql_store):
    for hour in (9, 14, 11):
        await sql_store.create("CCPCheckRecord", _check(
            timestamp=datetime(2024, 5, 1, hour, tzinfo=timezone.utc),
            check_time=f"{hour:02d}:00",
        ))
    newest = await sql_store.filter("CCPCheckRecord", order_by="-timestamp", limit=2)
    assert [c["check_time"] for c in newest] == ["14:00", "11:00"]


@pytest.mark.asyncio
async def test_sql_check_records_are_immutable(sql_store):
    check = await sql_store.create("CCPCheckRecord", _check())
    with pytest.raises(ImmutableRecordError):
        await sql_store.update("CCPCheckRecord", check["id"], {"status": "pass"})
    assert (await sql_store.get("CCPCheckRecord", check["id"]))["status"] == "fail"


@pytest.mark.asyncio
async def test_sql_incident_update_whitelist(sql_store):
    incident = await sql_store.create("IncidentRecord", _incident("chk-1"))

    updated = await sql_store.update("IncidentRecord", incident["id"], {
        "resolution_result": "resolved",
        "recheck_passed": True,
    })
    assert updated["resolution_result"] == "resolved"
    assert updated["recheck_passed"] is True

    with pytest.raises(ImmutableRecordError):
        await sql_store.update("IncidentRecord", incident["id"], {"incident_severity": "critical"})
    with pytest.raises(ImmutableRecordError):
        await sql_store.update("IncidentRecord", incident["id"], {"is_legal_hold": False})


@pytest.mark.asyncio
async def test_sql_one_incident_per_check(sql_store):
    await sql_store.create("IncidentRecord", _incident("chk-1"))
    with pytest.raises(StoreError):
        await sql_store.create("IncidentRecord", _incident("chk-1"))


@pytest.mark.asyncio
async def test_sql_rejects_unknown_entities_and_fields(sql_store):
    with pytest.raises(StoreError):
        await sql_store.create("Recipe", {"name": "Dal"})
    with pytest.raises(StoreError):
        await sql_store.filter("CCPCheckRecord", {"colour": "red"})
    with pytest.raises(StoreError):
        await sql_store.update("IncidentRecord", "missing", {"manager_notes": "x"})


@pytest.mark.asyncio
async def test_memory_store_matches_contract():
    store = InMemoryEntityStore()
    check = await store.create("CCPCheckRecord", _check(submission_id="sub-1"))

    with pytest.raises(StoreError):
        await store.create("CCPCheckRecord", _check(submission_id="sub-1"))
    with pytest.raises(ImmutableRecordError):
        await store.update("CCPCheckRecord", check["id"], {"notes": "edited"})

    incident = await store.create("IncidentRecord", _incident(check["id"]))
    with pytest.raises(ImmutableRecordError):
        await store.update("IncidentRecord", incident["id"], {"failure_value": "80°C"})

    # Returned records are copies
    fetched = await store.get("IncidentRecord", incident["id"])
    fetched["resolution_result"] = "resolved"
    assert (await store.get("IncidentRecord", incident["id"]))["resolution_result"] == "pending"


@pytest.mark.asyncio
async def test_memory_store_orders_descending():
    store = InMemoryEntityStore()
    await store.create("CorrectiveAction", {
        "ccp_check_id": "chk-1", "ccp_id": "c", "ccp_name": "n", "action_type": "discard_batch",
        "initiated_at": datetime(2024, 5, 1, 12, tzinfo=timezone.utc), "status": "pending",
        "requires_recheck": True,
    })
    await store.create("CorrectiveAction", {
        "ccp_check_id": "chk-1", "ccp_id": "c", "ccp_name": "n", "action_type": "stop_service",
        "initiated_at": datetime(2024, 5, 1, 13, tzinfo=timezone.utc), "status": "pending",
        "requires_recheck": True,
    })
    latest = await store.filter("CorrectiveAction", {"ccp_check_id": "chk-1"}, order_by="-initiated_at")
    assert latest[0]["action_type"] == "stop_service"
