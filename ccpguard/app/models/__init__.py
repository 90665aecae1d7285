"""Models package."""

from ccpguard.app.models.ccp_orm import CCPDefinitionORM
from ccpguard.app.models.ccp_check_orm import CCPCheckRecordORM
from ccpguard.app.models.incident_orm import IncidentRecordORM
from ccpguard.app.models.audit_orm import IncidentAuditEntryORM
from ccpguard.app.models.corrective_action_orm import CorrectiveActionORM
from ccpguard.app.models.notification_orm import NotificationORM
from ccpguard.app.models.operation_report_orm import OperationReportORM
from ccpguard.app.models.staff_orm import StaffMemberORM

# Entity type names used by the entity store
ENTITY_MODELS = {
    "CCPDefinition": CCPDefinitionORM,
    "CCPCheckRecord": CCPCheckRecordORM,
    "IncidentRecord": IncidentRecordORM,
    "IncidentAuditEntry": IncidentAuditEntryORM,
    "CorrectiveAction": CorrectiveActionORM,
    "Notification": NotificationORM,
    "OperationReport": OperationReportORM,
    "StaffMember": StaffMemberORM,
}

__all__ = [
    "CCPDefinitionORM",
    "CCPCheckRecordORM",
    "IncidentRecordORM",
    "IncidentAuditEntryORM",
    "CorrectiveActionORM",
    "NotificationORM",
    "OperationReportORM",
    "StaffMemberORM",
    "ENTITY_MODELS",
]
