import pytest

from ccpguard.app.core.errors import IncidentLoggingError, StoreError
from ccpguard.app.services import compliance_status
from ccpguard.app.services.compliance_status import MenuItemStatus
from ccpguard.app.services.reconciliation import reconcile_orphaned_failures

COOK = "ccp-cook-chicken"


@pytest.mark.asyncio
async def test_reconciliation_creates_only_missing_incidents(workflow, store, staff_user):
    await workflow.submit_check(COOK, "68°C", staff_user)
    store.fail_create["IncidentRecord"] = StoreError("write timeout")
    with pytest.raises(IncidentLoggingError) as exc_info:
        await workflow.submit_check(COOK, "50°C", staff_user)
    orphan = exc_info.value.check
    del store.fail_create["IncidentRecord"]
    await workflow.fanout.drain()

    report = await reconcile_orphaned_failures(store)

    assert report.scanned == 2
    assert len(report.created) == 1
    assert report.failed == []
    incident = await store.get("IncidentRecord", report.created[0])
    assert incident["ccp_check_id"] == orphan["id"]
    assert incident["incident_severity"] == "critical"
    assert incident["is_legal_hold"] is True
    assert incident["detected_by_id"] == staff_user.id
    assert store.all("IncidentAuditEntry")[-1]["action"] == "INCIDENT_RECONCILED"

    again = await reconcile_orphaned_failures(store)
    assert again.created == []
    assert len(store.all("IncidentRecord")) == 2


@pytest.mark.asyncio
async def test_reconciliation_counts_unparseable_checks(store):
    store.seed("CCPCheckRecord", {
        "ccp_id": COOK, "ccp_name": "Chicken core temperature", "check_date": None,
        "check_time": "09:00", "recorded_value": "burnt", "critical_limit": "75°C",
        "status": "fail", "timestamp": None,
    })

    report = await reconcile_orphaned_failures(store)

    assert report.scanned == 1
    assert len(report.failed) == 1
    assert store.all("IncidentRecord") == []


@pytest.mark.asyncio
async def test_blocked_menu_items_follow_open_incidents(workflow, store, staff_user):
    assert await compliance_status.blocked_menu_items(store) == []

    await workflow.submit_check(COOK, "70°C", staff_user)
    assert await compliance_status.blocked_menu_items(store) == [
        "menu-chicken-tikka", "menu-chicken-wrap",
    ]
    assert await compliance_status.menu_item_status(store, "menu-chicken-wrap") == MenuItemStatus.BLOCKED

    await workflow.submit_check(COOK, "80°C", staff_user)
    assert await compliance_status.blocked_menu_items(store) == []
    assert await compliance_status.menu_item_status(store, "menu-chicken-wrap") == MenuItemStatus.SAFE
    await workflow.fanout.drain()


@pytest.mark.asyncio
async def test_pending_ccps_and_menu_item_status(workflow, store, staff_user):
    pending = await compliance_status.pending_ccps(store)
    assert {c["id"] for c in pending} == {"ccp-cook-chicken", "ccp-freezer"}
    assert await compliance_status.menu_item_status(store, "menu-kulfi") == MenuItemStatus.PENDING
    assert await compliance_status.menu_item_status(store, "menu-naan") == MenuItemStatus.SAFE

    await workflow.submit_check("ccp-freezer", "-20°C", staff_user)

    pending = await compliance_status.pending_ccps(store)
    assert [c["id"] for c in pending] == ["ccp-cook-chicken"]
    assert await compliance_status.menu_item_status(store, "menu-kulfi") == MenuItemStatus.SAFE
