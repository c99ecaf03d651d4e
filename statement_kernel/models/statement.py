"""
Module: statement_kernel.models.statement
Responsibility: Persisted balance sheet snapshots and their append-only
    audit trail.
Architecture position: Kernel > Models.  Imports from db/ and domain value types.

Invariants enforced:
    - (tenant_id, statement_number) is unique.
    - (tenant_id, period_type, period_start) is unique: one snapshot per
      tenant per calendar period.  This constraint, not the pre-check in
      the service, is what decides races between concurrent generators.
    - (snapshot_id, seq) is unique and seq starts at 1.
    - Audit entries are never updated or deleted through the ORM
      (db/immutability.py).

Failure modes:
    - IntegrityError on either uniqueness constraint; translated by
      services.snapshot_store into DuplicatePeriodError or a numbering retry.

Audit relevance:
    The snapshot stores the fully assembled sections as JSON documents
    (decimals serialized as strings) so a finalized statement can be
    reproduced byte-for-byte without touching the ledger again.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from statement_kernel.db.base import Base, TenantScoped, UUIDString
from statement_kernel.db.types import LongText, ShortCode
from statement_kernel.domain.periods import PeriodType


class StatementStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    FINAL = "final"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPORTED = "exported"
    VIEWED = "viewed"


class StatementSnapshot(TenantScoped, Base):
    """
    A generated balance sheet.

    Mutable only while status == draft; the service enforces this through
    SnapshotStore.update_if_draft / delete_if_draft.
    """

    __tablename__ = "statement_snapshots"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "statement_number", name="uq_snapshot_tenant_number"
        ),
        UniqueConstraint(
            "tenant_id", "period_type", "period_start", name="uq_snapshot_tenant_period"
        ),
        Index("idx_snapshot_tenant_type_date", "tenant_id", "period_type", "statement_date"),
    )

    statement_number: Mapped[ShortCode] = mapped_column(nullable=False)
    statement_date: Mapped[datetime] = mapped_column(nullable=False)
    period_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PeriodType.MONTHLY.value
    )
    period_start: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StatementStatus.DRAFT.value
    )

    assets: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    liabilities: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    equity: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    ratios: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    degradations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    is_balanced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    generated_by: Mapped[ShortCode] = mapped_column(nullable=False)
    generated_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_by: Mapped[ShortCode | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    notes: Mapped[LongText | None] = mapped_column(nullable=True)

    @property
    def is_draft(self) -> bool:
        return self.status == StatementStatus.DRAFT.value

    def __repr__(self) -> str:
        return f"<StatementSnapshot {self.tenant_id}:{self.statement_number} {self.status}>"


class StatementAuditEntry(TenantScoped, Base):
    """
    One lifecycle event on a snapshot.

    Append-only: ORM listeners reject UPDATE and DELETE of individual rows.
    """

    __tablename__ = "statement_audit_entries"

    __table_args__ = (
        UniqueConstraint("snapshot_id", "seq", name="uq_audit_entry_snapshot_seq"),
    )

    snapshot_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("statement_snapshots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seq: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    performed_by: Mapped[ShortCode] = mapped_column(nullable=False)
    performed_at: Mapped[datetime] = mapped_column(nullable=False)
    details: Mapped[LongText | None] = mapped_column(nullable=True)
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<StatementAuditEntry {self.snapshot_id}#{self.seq} {self.action}>"
