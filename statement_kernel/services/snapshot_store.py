"""
SnapshotStore -- guarded writes for balance sheet snapshots.

Responsibility:
    The only code path that inserts, edits or deletes StatementSnapshot rows.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Invariants enforced:
    - insert_if_absent runs inside a SAVEPOINT.  A uniqueness violation
      rolls back only the savepoint and is reported as an InsertOutcome, so
      the caller's transaction survives and can retry with a new number.
    - update_if_draft / delete_if_draft refuse anything but drafts.
    - Deleting a draft removes its audit rows with one statement-level
      DELETE scoped to that snapshot; per-row deletes of audit entries stay
      blocked by the immutability listeners.

Failure modes:
    - ImmutableStateError on edit/delete of a non-draft snapshot.
    - IntegrityError re-raised when it is neither a period nor a number
      conflict (e.g. a NOT NULL violation, which is a programming error).
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from statement_kernel.exceptions import ImmutableStateError
from statement_kernel.logging_config import get_logger
from statement_kernel.models.statement import StatementAuditEntry, StatementSnapshot
from statement_kernel.selectors.snapshot_selector import SnapshotSelector
from statement_kernel.services.base import BaseService

logger = get_logger("services.snapshot_store")


class InsertOutcome(str, Enum):
    INSERTED = "inserted"
    PERIOD_TAKEN = "period_taken"
    NUMBER_TAKEN = "number_taken"


class SnapshotStore(BaseService[StatementSnapshot]):
    """Uniqueness- and status-checked persistence for snapshots."""

    def __init__(self, session):
        super().__init__(session)
        self._snapshots = SnapshotSelector(session)

    def insert_if_absent(self, snapshot: StatementSnapshot) -> InsertOutcome:
        """
        Insert snapshot unless its period or number is already taken.

        Returns:
            INSERTED, PERIOD_TAKEN or NUMBER_TAKEN.  On anything but
            INSERTED the snapshot object is no longer in the session.
        """
        try:
            with self.session.begin_nested():
                self.session.add(snapshot)
                self.session.flush()
        except IntegrityError:
            if self._snapshots.find_by_tenant_and_period(
                snapshot.tenant_id, snapshot.period_type, snapshot.period_start
            ) is not None:
                outcome = InsertOutcome.PERIOD_TAKEN
            elif self._snapshots.number_exists(snapshot.tenant_id, snapshot.statement_number):
                outcome = InsertOutcome.NUMBER_TAKEN
            else:
                raise
            logger.info(
                "snapshot_insert_conflict",
                extra={
                    "tenant_id": snapshot.tenant_id,
                    "statement_number": snapshot.statement_number,
                    "period_type": snapshot.period_type,
                    "outcome": outcome.value,
                },
            )
            return outcome

        return InsertOutcome.INSERTED

    def require_draft(self, snapshot: StatementSnapshot, operation: str) -> None:
        if not snapshot.is_draft:
            logger.warning(
                "snapshot_mutation_rejected",
                extra={
                    "statement_id": str(snapshot.id),
                    "status": snapshot.status,
                    "operation": operation,
                },
            )
            raise ImmutableStateError(str(snapshot.id), snapshot.status, operation)

    def update_if_draft(
        self,
        snapshot: StatementSnapshot,
        values: dict[str, Any],
        updated_by: str,
        updated_at: datetime,
    ) -> StatementSnapshot:
        """Apply values to a draft, bump its version and flush."""
        self.require_draft(snapshot, "update")
        for attr, value in values.items():
            setattr(snapshot, attr, value)
        snapshot.version = (snapshot.version or 1) + 1
        snapshot.updated_by = updated_by
        snapshot.updated_at = updated_at
        self.session.flush()
        return snapshot

    def set_status(
        self,
        snapshot: StatementSnapshot,
        status: str,
        updated_by: str,
        updated_at: datetime,
    ) -> StatementSnapshot:
        """Change only the workflow status; allowed in every state."""
        snapshot.status = status
        snapshot.updated_by = updated_by
        snapshot.updated_at = updated_at
        self.session.flush()
        return snapshot

    def delete_if_draft(self, snapshot: StatementSnapshot) -> None:
        self.require_draft(snapshot, "delete")
        self.session.execute(
            delete(StatementAuditEntry).where(
                StatementAuditEntry.snapshot_id == snapshot.id
            )
        )
        self.session.delete(snapshot)
        self.session.flush()
