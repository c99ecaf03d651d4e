"""
AuditRecorder -- append-only lifecycle trail for statement snapshots.

Responsibility:
    Appends one StatementAuditEntry per lifecycle event (created, updated,
    status_changed, approved, rejected, exported, viewed) with a per-snapshot
    sequence number that starts at 1 and increases by one.

Architecture position:
    Kernel > Services.  Flushes within the caller's transaction, so the
    entry commits or rolls back together with the snapshot change it
    describes.

Invariants enforced:
    - Exactly one entry per call; nothing is batched or deferred.
    - seq is last seq + 1 for the snapshot; UNIQUE(snapshot_id, seq)
      rejects a concurrent duplicate instead of silently reordering.
    - Entries are never updated or deleted (db/immutability.py).

Failure modes:
    - InvalidAuditActionError for an action outside AuditAction.
    - IntegrityError if two writers race on the same snapshot's seq; the
      caller's transaction fails and nothing is lost silently.
"""

from typing import Any

from sqlalchemy.orm import Session

from statement_kernel.domain.clock import Clock, SystemClock
from statement_kernel.exceptions import InvalidAuditActionError
from statement_kernel.logging_config import get_logger
from statement_kernel.models.statement import (
    AuditAction,
    StatementAuditEntry,
    StatementSnapshot,
)
from statement_kernel.selectors.snapshot_selector import SnapshotSelector
from statement_kernel.services.base import BaseService

logger = get_logger("services.audit_recorder")


def coerce_audit_action(action: str | AuditAction) -> AuditAction:
    if isinstance(action, AuditAction):
        return action
    try:
        return AuditAction(str(action).strip().lower())
    except ValueError:
        raise InvalidAuditActionError(str(action)) from None


class AuditRecorder(BaseService[StatementAuditEntry]):
    """Writes audit entries for statement snapshots."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._snapshots = SnapshotSelector(session)

    def append(
        self,
        snapshot: StatementSnapshot,
        action: str | AuditAction,
        performed_by: str,
        details: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> StatementAuditEntry:
        """Append and flush one audit entry for snapshot."""
        audit_action = coerce_audit_action(action)
        seq = self._snapshots.last_audit_seq(snapshot.id) + 1

        entry = StatementAuditEntry(
            tenant_id=snapshot.tenant_id,
            snapshot_id=snapshot.id,
            seq=seq,
            action=audit_action.value,
            performed_by=performed_by,
            performed_at=self._clock.now_utc(),
            details=details,
            changes=changes,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "statement_id": str(snapshot.id),
                "statement_number": snapshot.statement_number,
                "action": audit_action.value,
                "seq": seq,
                "performed_by": performed_by,
            },
        )
        return entry

    def trail(self, snapshot: StatementSnapshot) -> list[StatementAuditEntry]:
        return self._snapshots.audit_trail(snapshot.tenant_id, snapshot.id)
