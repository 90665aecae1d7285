"""
Notification Fan-out.

Best-effort alerts to the people responsible for a CCP failure. Recipients
are resolved at dispatch time and every delivery is attempted independently
and concurrently: one failing recipient never stops the others, and no
delivery outcome ever reaches the audit writes that precede it.

Notifications are written through the entity store like any other record
(entity type "Notification").
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Set

from ccpguard.app.core.config import get_settings
from ccpguard.app.core.errors import NotificationDeliveryError
from ccpguard.app.core.security import User
from ccpguard.app.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

PRIORITY_CRITICAL = "critical"  # highest level offered


@dataclass(frozen=True)
class Recipient:
    email: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Alert:
    title: str
    message: str
    type: str = "alert"
    priority: str = PRIORITY_CRITICAL
    related_entity: Optional[str] = None
    related_entity_id: Optional[str] = None


@dataclass
class FanoutResult:
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class RecipientResolver(ABC):
    """Resolves who must hear about a failure. Never cached."""

    @abstractmethod
    async def resolve_managers(self) -> List[Recipient]:
        ...


class StaffRecipientResolver(RecipientResolver):
    """Active staff members holding the manager role."""

    def __init__(self, store: EntityStore, role: Optional[str] = None):
        self.store = store
        self.role = role or get_settings().manager_role

    async def resolve_managers(self) -> List[Recipient]:
        staff = await self.store.filter("StaffMember", {"role": self.role, "status": "active"})
        return [
            Recipient(email=member["email"], name=member.get("full_name"))
            for member in staff
            if member.get("email")
        ]


def ccp_failure_alert(check: Dict[str, Any], incident: Optional[Dict[str, Any]] = None) -> Alert:
    message = (
        f"Critical Control Point failed. Value: {check['recorded_value']} "
        f"(Limit: {check['critical_limit']}). Corrective actions required."
    )
    if incident:
        message += f" Incident #{incident['id']} ({incident['incident_severity']})."
    return Alert(
        title=f"CCP FAILED: {check['ccp_name']}",
        message=message,
        type="alert",
        priority=PRIORITY_CRITICAL,
        related_entity="IncidentRecord" if incident else "CCPCheckRecord",
        related_entity_id=incident["id"] if incident else check["id"],
    )


def stop_service_alert(check: Dict[str, Any], action: Dict[str, Any], user: User) -> Alert:
    return Alert(
        title="URGENT: CCP Failure - Service Stopped",
        message=(
            f"{check['ccp_name']} failed ({check['recorded_value']} vs limit "
            f"{check['critical_limit']}). Service halted. Corrective action "
            f"initiated by {user.display_name or user.id}"
        ),
        type="alert",
        priority=PRIORITY_CRITICAL,
        related_entity="CorrectiveAction",
        related_entity_id=action["id"],
    )


class NotificationFanout:
    def __init__(
        self,
        store: EntityStore,
        resolver: RecipientResolver,
        operations_mailbox: Optional[str] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.operations_mailbox = operations_mailbox or get_settings().operations_mailbox
        self._pending: Set[asyncio.Task] = set()

    async def _deliver(self, recipient: Recipient, alert: Alert) -> Dict[str, Any]:
        try:
            return await self.store.create("Notification", {
                "recipient_email": recipient.email,
                "recipient_name": recipient.name,
                "title": alert.title,
                "message": alert.message,
                "type": alert.type,
                "priority": alert.priority,
                "is_read": False,
                "related_entity": alert.related_entity,
                "related_entity_id": alert.related_entity_id,
            })
        except Exception as e:
            raise NotificationDeliveryError(recipient.email, e) from e

    async def broadcast(self, recipients: List[Recipient], alert: Alert) -> FanoutResult:
        result = FanoutResult()
        outcomes = await asyncio.gather(
            *[self._deliver(r, alert) for r in recipients],
            return_exceptions=True,
        )
        for recipient, outcome in zip(recipients, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Notification '{alert.title}' not delivered: {outcome}")
                result.failed.append(recipient.email)
            else:
                result.delivered.append(recipient.email)
        logger.info(
            f"Notification '{alert.title}' delivered to {len(result.delivered)}/{len(recipients)} recipients"
        )
        return result

    async def notify_managers(self, alert: Alert) -> FanoutResult:
        try:
            recipients = await self.resolver.resolve_managers()
        except Exception as e:
            logger.warning(f"Could not resolve manager recipients for '{alert.title}': {e}")
            return FanoutResult()
        return await self.broadcast(recipients, alert)

    async def notify_operations(self, alert: Alert) -> FanoutResult:
        return await self.broadcast([Recipient(self.operations_mailbox, "Operations")], alert)

    def dispatch(self, delivery: Awaitable[FanoutResult]) -> asyncio.Task:
        """Run a delivery in the background; the caller does not wait for it."""
        task = asyncio.ensure_future(delivery)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every dispatched delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
