"""Read-only compliance views over open incidents and today's checks."""
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from ccpguard.app.services.entity_store import EntityStore
from ccpguard.app.services.incident_service import list_open_incidents, utcnow


class MenuItemStatus(str, Enum):
    BLOCKED = "blocked"
    PENDING = "pending"
    SAFE = "safe"


async def blocked_menu_items(store: EntityStore) -> List[str]:
    """Menu items blocked by at least one open incident."""
    blocked = set()
    for incident in await list_open_incidents(store):
        blocked.update(incident.get("blocked_menu_items") or [])
    return sorted(blocked)


async def pending_ccps(store: EntityStore, day: Optional[date] = None) -> List[Dict[str, Any]]:
    """Active CCPs with no check recorded on ``day`` (UTC today by default)."""
    day = day or utcnow().date()
    ccps = await store.filter("CCPDefinition", {"is_active": True}, order_by="name")
    checked = {c["ccp_id"] for c in await store.filter("CCPCheckRecord", {"check_date": day})}
    return [ccp for ccp in ccps if ccp["id"] not in checked]


async def menu_item_status(
    store: EntityStore,
    menu_item_id: str,
    day: Optional[date] = None,
) -> MenuItemStatus:
    if menu_item_id in await blocked_menu_items(store):
        return MenuItemStatus.BLOCKED
    for ccp in await pending_ccps(store, day):
        if menu_item_id in (ccp.get("linked_menu_items") or []):
            return MenuItemStatus.PENDING
    return MenuItemStatus.SAFE
