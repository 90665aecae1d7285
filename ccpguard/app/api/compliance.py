"""Compliance status views and the orphaned-incident reconciliation sweep."""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ccpguard.app.api.deps import get_workflow
from ccpguard.app.core.security import Capability, User, require_capability
from ccpguard.app.services import compliance_status
from ccpguard.app.services.reconciliation import reconcile_orphaned_failures
from ccpguard.app.services.workflow import CCPWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/blocked-menu-items")
async def get_blocked_menu_items(
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CHECK)),
):
    """Menu items that must not be served while their incidents are open."""
    items = await compliance_status.blocked_menu_items(workflow.store)
    return {"blocked_menu_items": items}


@router.get("/pending-ccps")
async def get_pending_ccps(
    day: Optional[date] = Query(None),
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CHECK)),
):
    ccps = await compliance_status.pending_ccps(workflow.store, day)
    return {
        "pending_ccps": [
            {"id": c["id"], "name": c["name"], "check_frequency": c.get("check_frequency")}
            for c in ccps
        ]
    }


@router.get("/menu-items/{menu_item_id}/status")
async def get_menu_item_status(
    menu_item_id: str,
    day: Optional[date] = Query(None),
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECORD_CHECK)),
):
    item_status = await compliance_status.menu_item_status(workflow.store, menu_item_id, day)
    return {"menu_item_id": menu_item_id, "status": item_status.value}


@router.post("/reconcile")
async def reconcile(
    workflow: CCPWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_capability(Capability.RECONCILE)),
):
    """Create the missing incidents for failed checks left behind by abandoned submissions."""
    logger.info(f"Reconciliation sweep requested by {current_user.id}")
    report = await reconcile_orphaned_failures(workflow.store)
    return {
        "scanned": report.scanned,
        "created": report.created,
        "failed": report.failed,
    }
