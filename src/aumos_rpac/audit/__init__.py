"""Decision audit trail."""
from __future__ import annotations

from aumos_rpac.audit.logger import AuditEntry, DecisionAuditLogger, describe_subject

__all__ = ["AuditEntry", "DecisionAuditLogger", "describe_subject"]
