from mfgops.domain.audit.db_models import AuditLog
from mfgops.domain.audit.service import AuditListFilters, list_audit_logs, record_action

__all__ = [
    "AuditListFilters",
    "AuditLog",
    "list_audit_logs",
    "record_action",
]
