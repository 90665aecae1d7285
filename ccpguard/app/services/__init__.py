"""Services package."""

from ccpguard.app.services.entity_store import EntityStore, InMemoryEntityStore, SqlEntityStore
from ccpguard.app.services.evidence_upload import EvidenceUploader, LocalEvidenceUploader
from ccpguard.app.services.notification_fanout import NotificationFanout, StaffRecipientResolver
from ccpguard.app.services.workflow import CCPWorkflow, CheckOutcome

__all__ = [
    "EntityStore",
    "InMemoryEntityStore",
    "SqlEntityStore",
    "EvidenceUploader",
    "LocalEvidenceUploader",
    "NotificationFanout",
    "StaffRecipientResolver",
    "CCPWorkflow",
    "CheckOutcome",
]
