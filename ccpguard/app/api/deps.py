"""
Shared API dependencies.

The workflow is built once per process on top of the SQL entity store.
Tests swap it through ``app.dependency_overrides[get_workflow]``.
"""
from functools import lru_cache

from ccpguard.app.core.config import get_settings
from ccpguard.app.core.database import async_session_maker
from ccpguard.app.services.entity_store import EntityStore, SqlEntityStore
from ccpguard.app.services.evidence_upload import LocalEvidenceUploader
from ccpguard.app.services.notification_fanout import NotificationFanout, StaffRecipientResolver
from ccpguard.app.services.workflow import CCPWorkflow


@lru_cache
def get_workflow() -> CCPWorkflow:
    settings = get_settings()
    store = SqlEntityStore(async_session_maker)
    fanout = NotificationFanout(
        store,
        StaffRecipientResolver(store, settings.manager_role),
        operations_mailbox=settings.operations_mailbox,
    )
    return CCPWorkflow(store, fanout, LocalEvidenceUploader())
