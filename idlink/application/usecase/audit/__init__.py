"""Security audit use cases."""

from .get_audit_logs import GetAuditLogsUseCase

__all__ = ["GetAuditLogsUseCase"]
