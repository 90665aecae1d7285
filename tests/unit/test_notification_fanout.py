"""
Unit tests for the notification fan-out.
"""
import pytest

from ccpguard.app.services.notification_fanout import (
    Alert,
    NotificationFanout,
    Recipient,
    RecipientResolver,
    ccp_failure_alert,
    stop_service_alert,
)


class BrokenResolver(RecipientResolver):
    async def resolve_managers(self):
        raise RuntimeError("staff directory unavailable")


class CountingResolver(RecipientResolver):
    def __init__(self, recipients):
        self.recipients = recipients
        self.calls = 0

    async def resolve_managers(self):
        self.calls += 1
        return list(self.recipients)


ALERT = Alert(title="CCP FAILED: Chicken core temperature", message="Value: 70°C (Limit: 75°C)")


@pytest.mark.asyncio
async def test_one_failing_recipient_does_not_stop_the_others(store, fanout):
    store.fail_recipients.add("ben@example.com")

    result = await fanout.notify_managers(ALERT)

    assert sorted(result.delivered) == ["asha@example.com", "cara@example.com"]
    assert result.failed == ["ben@example.com"]
    delivered = {n["recipient_email"] for n in store.all("Notification")}
    assert delivered == {"asha@example.com", "cara@example.com"}


@pytest.mark.asyncio
async def test_only_active_managers_are_notified(store, fanout):
    result = await fanout.notify_managers(ALERT)
    assert "old@example.com" not in result.delivered
    assert "cook@example.com" not in result.delivered
    assert len(result.delivered) == 3


@pytest.mark.asyncio
async def test_recipients_resolved_on_every_dispatch(store):
    resolver = CountingResolver([Recipient("asha@example.com")])
    fanout = NotificationFanout(store, resolver, "ops@example.com")

    await fanout.notify_managers(ALERT)
    resolver.recipients.append(Recipient("new-manager@example.com"))
    result = await fanout.notify_managers(ALERT)

    assert resolver.calls == 2
    assert "new-manager@example.com" in result.delivered


@pytest.mark.asyncio
async def test_resolver_failure_is_swallowed(store):
    fanout = NotificationFanout(store, BrokenResolver(), "ops@example.com")
    result = await fanout.notify_managers(ALERT)
    assert result.delivered == [] and result.failed == []


@pytest.mark.asyncio
async def test_dispatch_runs_in_background_and_drains(store, fanout):
    task = fanout.dispatch(fanout.notify_operations(ALERT))
    await fanout.drain()

    assert task.done()
    notifications = store.all("Notification")
    assert [n["recipient_email"] for n in notifications] == ["ops@example.com"]
    assert notifications[0]["priority"] == "critical"
    assert notifications[0]["is_read"] is False


def test_failure_alert_carries_value_limit_and_incident():
    check = {"id": "chk-1", "ccp_name": "Chicken core temperature", "recorded_value": "70°C",
             "critical_limit": "75°C"}
    incident = {"id": "inc-1", "incident_severity": "minor"}

    alert = ccp_failure_alert(check, incident)

    assert alert.title == "CCP FAILED: Chicken core temperature"
    assert "70°C" in alert.message and "75°C" in alert.message and "inc-1" in alert.message
    assert alert.priority == "critical"
    assert alert.related_entity == "IncidentRecord"
    assert ccp_failure_alert(check).related_entity_id == "chk-1"


def test_stop_service_alert_names_initiator(staff_user):
    check = {"id": "chk-1", "ccp_name": "Chicken core temperature", "recorded_value": "70°C",
             "critical_limit": "75°C"}
    alert = stop_service_alert(check, {"id": "act-1"}, staff_user)

    assert alert.priority == "critical"
    for fragment in ("Chicken core temperature", "70°C", "75°C", "Sam Cook"):
        assert fragment in alert.message
    assert alert.related_entity_id == "act-1"
