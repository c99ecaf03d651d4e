"""
ORM-Level Immutability Enforcement for the statement audit trail.

SQLAlchemy fires mapper events before an UPDATE or DELETE of an ORM
instance reaches the database.  The listeners below hook both events for
StatementAuditEntry and raise ImmutabilityViolationError:

    session.flush()
         |
    [before_update] --> ImmutabilityViolationError
    [before_delete] --> ImmutabilityViolationError

Snapshots are NOT protected here: drafts must stay editable, and the
draft-only rule is a business rule raised as ImmutableStateError by the
snapshot store.  When a draft is deleted the store removes its audit rows
with a statement-level DELETE scoped to that snapshot, which does not go
through the per-instance mapper events.
"""

from sqlalchemy import event

from statement_kernel.exceptions import ImmutabilityViolationError
from statement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_ENTITY = "StatementAuditEntry"


def _blocked(operation: str, verb: str):
    def listener(mapper, connection, target):
        logger.error(
            "audit_entry_write_blocked",
            extra={"entity_type": _ENTITY, "entity_id": str(target.id), "operation": operation},
        )
        raise ImmutabilityViolationError(
            entity_type=_ENTITY,
            entity_id=str(target.id),
            reason=f"Audit entries are append-only and cannot be {verb}",
        )

    listener.__name__ = f"_block_audit_{operation.lower()}"
    return listener


_LISTENERS = (
    ("before_update", _blocked("UPDATE", "modified")),
    ("before_delete", _blocked("DELETE", "deleted")),
)


def register_immutability_listeners() -> None:
    """Attach the audit-entry guards.  Idempotent; call after models are imported."""
    from statement_kernel.models.statement import StatementAuditEntry

    for event_name, listener in _LISTENERS:
        if not event.contains(StatementAuditEntry, event_name, listener):
            event.listen(StatementAuditEntry, event_name, listener)


def unregister_immutability_listeners() -> None:
    """Detach the audit-entry guards (tests only)."""
    from statement_kernel.models.statement import StatementAuditEntry

    for event_name, listener in _LISTENERS:
        if event.contains(StatementAuditEntry, event_name, listener):
            event.remove(StatementAuditEntry, event_name, listener)
