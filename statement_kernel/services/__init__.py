"""Kernel write services - numbering, audit trail, snapshot persistence."""

from statement_kernel.services.audit_recorder import AuditRecorder
from statement_kernel.services.numbering_service import StatementNumberingService
from statement_kernel.services.snapshot_store import InsertOutcome, SnapshotStore

__all__ = [
    "AuditRecorder",
    "InsertOutcome",
    "SnapshotStore",
    "StatementNumberingService",
]
