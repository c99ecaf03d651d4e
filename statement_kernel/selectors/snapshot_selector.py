"""
Module: statement_kernel.selectors.snapshot_selector
Responsibility: Read access to persisted balance sheet snapshots and their
    audit trail.
Architecture position: Kernel > Selectors.

Unlike the ledger selectors this one returns ORM instances: the balance
sheet service mutates drafts through SnapshotStore and needs the loaded
rows.  Nothing here writes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from statement_kernel.models.statement import StatementAuditEntry, StatementSnapshot
from statement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StatementStats:
    """Aggregate counts over a tenant's snapshots."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    latest_statement_date: datetime | None = None


class SnapshotSelector(BaseSelector[StatementSnapshot]):
    """Queries over statement_snapshots and statement_audit_entries."""

    def _scoped(self, tenant_id: str):
        return select(StatementSnapshot).where(StatementSnapshot.tenant_id == tenant_id)

    def find_by_id(self, tenant_id: str, snapshot_id: UUID) -> StatementSnapshot | None:
        stmt = self._scoped(tenant_id).where(StatementSnapshot.id == snapshot_id)
        return self.session.scalars(stmt).first()

    def find_by_number(self, tenant_id: str, statement_number: str) -> StatementSnapshot | None:
        stmt = self._scoped(tenant_id).where(
            StatementSnapshot.statement_number == statement_number
        )
        return self.session.scalars(stmt).first()

    def number_exists(self, tenant_id: str, statement_number: str) -> bool:
        stmt = select(func.count(StatementSnapshot.id)).where(
            StatementSnapshot.tenant_id == tenant_id,
            StatementSnapshot.statement_number == statement_number,
        )
        return bool(self.session.scalar(stmt))

    def numbers_with_prefix(self, tenant_id: str, prefix: str) -> list[str]:
        """All statement numbers of the tenant that start with prefix + '-'."""
        stmt = select(StatementSnapshot.statement_number).where(
            StatementSnapshot.tenant_id == tenant_id,
            StatementSnapshot.statement_number.startswith(f"{prefix}-", autoescape=True),
        )
        return list(self.session.scalars(stmt))

    def find_by_tenant_and_period(
        self, tenant_id: str, period_type: str, period_start: datetime
    ) -> StatementSnapshot | None:
        stmt = self._scoped(tenant_id).where(
            StatementSnapshot.period_type == period_type,
            StatementSnapshot.period_start == period_start,
        )
        return self.session.scalars(stmt).first()

    def find_previous(
        self, tenant_id: str, period_type: str, before: datetime
    ) -> StatementSnapshot | None:
        """Latest snapshot of the same period type dated strictly before."""
        stmt = (
            self._scoped(tenant_id)
            .where(
                StatementSnapshot.period_type == period_type,
                StatementSnapshot.statement_date < before,
            )
            .order_by(StatementSnapshot.statement_date.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def find_in_window(
        self, tenant_id: str, period_type: str, start: datetime, end: datetime
    ) -> StatementSnapshot | None:
        """Latest snapshot of the period type dated within [start, end)."""
        stmt = (
            self._scoped(tenant_id)
            .where(
                StatementSnapshot.period_type == period_type,
                StatementSnapshot.statement_date >= start,
                StatementSnapshot.statement_date < end,
            )
            .order_by(StatementSnapshot.statement_date.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def find_latest_by_period_type(
        self, tenant_id: str, period_type: str
    ) -> StatementSnapshot | None:
        stmt = (
            self._scoped(tenant_id)
            .where(StatementSnapshot.period_type == period_type)
            .order_by(StatementSnapshot.statement_date.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def list_statements(
        self,
        tenant_id: str,
        status: str | None = None,
        period_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[StatementSnapshot]:
        """Snapshots newest first, optionally filtered."""
        stmt = self._scoped(tenant_id)
        if status is not None:
            stmt = stmt.where(StatementSnapshot.status == status)
        if period_type is not None:
            stmt = stmt.where(StatementSnapshot.period_type == period_type)
        if start is not None:
            stmt = stmt.where(StatementSnapshot.statement_date >= start)
        if end is not None:
            stmt = stmt.where(StatementSnapshot.statement_date <= end)
        stmt = stmt.order_by(StatementSnapshot.statement_date.desc())
        return list(self.session.scalars(stmt))

    def stats(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> StatementStats:
        filters = [StatementSnapshot.tenant_id == tenant_id]
        if start is not None:
            filters.append(StatementSnapshot.statement_date >= start)
        if end is not None:
            filters.append(StatementSnapshot.statement_date <= end)

        by_status = {
            status: count
            for status, count in self.session.execute(
                select(StatementSnapshot.status, func.count(StatementSnapshot.id))
                .where(*filters)
                .group_by(StatementSnapshot.status)
            )
        }
        latest = self.session.scalars(
            select(StatementSnapshot.statement_date)
            .where(*filters)
            .order_by(StatementSnapshot.statement_date.desc())
            .limit(1)
        ).first()
        return StatementStats(
            total=sum(by_status.values()),
            by_status=by_status,
            latest_statement_date=latest,
        )

    def audit_trail(self, tenant_id: str, snapshot_id: UUID) -> list[StatementAuditEntry]:
        """Audit entries of a snapshot in append order."""
        stmt = (
            select(StatementAuditEntry)
            .where(
                StatementAuditEntry.tenant_id == tenant_id,
                StatementAuditEntry.snapshot_id == snapshot_id,
            )
            .order_by(StatementAuditEntry.seq)
        )
        return list(self.session.scalars(stmt))

    def last_audit_seq(self, snapshot_id: UUID) -> int:
        stmt = select(func.max(StatementAuditEntry.seq)).where(
            StatementAuditEntry.snapshot_id == snapshot_id
        )
        return self.session.scalar(stmt) or 0
