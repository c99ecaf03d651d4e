"""
Balance Sheet Service (``statement_modules.balance_sheet.service``).

Responsibility
--------------
Generates tenant-scoped balance sheet snapshots from the ledger and the
chart of accounts, and manages their lifecycle afterwards: status
workflow, draft edits, draft deletion, comparisons and the audit trail.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``BalanceSheetService`` is the sole public
entry point.  Reads go through kernel selectors, writes through
``SnapshotStore``, numbering through ``StatementNumberingService`` and the
trail through ``AuditRecorder``.  Constructor: ``session`` + ``clock`` +
``config``.

Invariants enforced
-------------------
* Every read and write is scoped to one tenant; no query omits tenant_id.
* One snapshot per tenant, period type and period start.  The pre-check
  gives a clean error in the common case; the storage constraint decides
  races.
* A snapshot is written only after all three sections assembled; an
  AggregationError leaves nothing behind.
* Every lifecycle change appends exactly one audit entry in the same
  transaction.
* All monetary amounts use ``Decimal``.
* Flushes, never commits.  The caller owns the transaction.

Failure modes
-------------
* Missing tenant  -> ``MissingTenantError``.
* Bad date or period type  -> ``InvalidDateError`` / ``InvalidPeriodTypeError``.
* Period already generated  -> ``DuplicatePeriodError``.
* Section assembly failure  -> ``AggregationError``.
* Number collisions beyond the retry bound  -> ``NumberAllocationError``.
* Unknown snapshot  -> ``StatementNotFoundError``.
* Edit or delete of a non-draft  -> ``ImmutableStateError``.
* Move not allowed by the workflow  -> ``InvalidStatusTransitionError``.
* A failing leaf calculation does not raise; it is recorded as a
  degradation on the snapshot.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from statement_kernel.domain.clock import Clock, SystemClock
from statement_kernel.domain.periods import (
    PeriodType,
    coerce_period_type,
    parse_cutoff,
    parse_range_start,
    period_start,
    statement_number_prefix,
    year_ago_window,
)
from statement_kernel.exceptions import (
    DuplicatePeriodError,
    InvalidStatusTransitionError,
    MissingTenantError,
    NumberAllocationError,
    StatementNotFoundError,
)
from statement_kernel.logging_config import LogContext, get_logger
from statement_kernel.models.statement import (
    AuditAction,
    StatementAuditEntry,
    StatementSnapshot,
    StatementStatus,
)
from statement_kernel.selectors.chart_selector import ChartSelector
from statement_kernel.selectors.ledger_selector import LedgerSelector
from statement_kernel.selectors.profit_and_loss_selector import ProfitAndLossSelector
from statement_kernel.selectors.snapshot_selector import SnapshotSelector, StatementStats
from statement_kernel.services.audit_recorder import AuditRecorder
from statement_kernel.services.numbering_service import StatementNumberingService
from statement_kernel.services.snapshot_store import InsertOutcome, SnapshotStore

from statement_modules.balance_sheet.aggregator import BalanceAggregator
from statement_modules.balance_sheet.assemblers import (
    StatementAssembler,
    recompose_assets,
    recompose_equity,
    recompose_liabilities,
)
from statement_modules.balance_sheet.chart_resolver import ChartResolver
from statement_modules.balance_sheet.comparison import (
    BaselineKind,
    coerce_baseline_kind,
    compare_snapshots,
)
from statement_modules.balance_sheet.config import BalanceSheetConfig
from statement_modules.balance_sheet.context import GenerationContext
from statement_modules.balance_sheet.models import (
    Assets,
    BalanceSheetStatement,
    ComparisonResult,
    Equity,
    Liabilities,
)
from statement_modules.balance_sheet.ratios import compute_ratios
from statement_modules.balance_sheet.retained_earnings import RetainedEarningsResolver
from statement_modules.balance_sheet.statements import (
    diff_documents,
    merge_patch,
    render_to_dict,
    section_from_dict,
)
from statement_modules.balance_sheet.workflows import (
    REJECTABLE_STATES,
    STATEMENT_REVIEW_WORKFLOW,
)

logger = get_logger("modules.balance_sheet.service")

DRAFT_EDITABLE_FIELDS = frozenset({"notes", "assets", "liabilities", "equity"})


def _require_tenant(tenant_id: str | None, operation: str) -> str:
    if tenant_id is None or not str(tenant_id).strip():
        raise MissingTenantError(operation)
    return str(tenant_id).strip()


class BalanceSheetService:
    """
    Balance sheet generation and lifecycle service.

    Contract
    --------
    * ``generate`` returns the persisted draft ``StatementSnapshot``.
    * Lookups take a tenant id and never return another tenant's rows.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT post journal entries or change account balances.
    * Does NOT render PDFs or export files.
    * Does NOT enforce who may approve; ``performed_by`` is recorded as given.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BalanceSheetConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or BalanceSheetConfig.with_defaults()

        self._chart = ChartSelector(session)
        self._ledger = LedgerSelector(session)
        self._profit_and_loss = ProfitAndLossSelector(session)
        self._snapshots = SnapshotSelector(session)

        self._store = SnapshotStore(session)
        self._numbering = StatementNumberingService(
            session, max_probe=self._config.max_number_probe
        )
        self._audit = AuditRecorder(session, self._clock)

    # =========================================================================
    # Generation
    # =========================================================================

    def generate(
        self,
        tenant_id: str,
        statement_date: str | date | datetime,
        period_type: str | PeriodType = PeriodType.MONTHLY,
        requested_by: str = "system",
    ) -> StatementSnapshot:
        """
        Assemble and persist a draft balance sheet as of statement_date.

        A date without a time means the end of that day (UTC).
        """
        tenant_id = _require_tenant(tenant_id, "generate")
        cutoff = parse_cutoff(statement_date)
        period = coerce_period_type(period_type)
        start = period_start(cutoff, period)

        with LogContext.bind(tenant_id=tenant_id, actor_id=requested_by):
            logger.info(
                "balance_sheet_generation_started",
                extra={
                    "statement_date": cutoff,
                    "period_type": period.value,
                    "period_start": start,
                },
            )

            if self._snapshots.find_by_tenant_and_period(tenant_id, period.value, start):
                logger.warning(
                    "balance_sheet_period_exists",
                    extra={"period_type": period.value, "period_start": start},
                )
                raise DuplicatePeriodError(tenant_id, period.value, start.isoformat())

            context = GenerationContext(
                tenant_id=tenant_id,
                cutoff=cutoff,
                period_type=period,
                requested_by=requested_by,
            )
            statement = self._assemble(context, start)
            snapshot = self._persist(statement, context, requested_by)

            self._audit.append(
                snapshot,
                AuditAction.CREATED,
                requested_by,
                details=f"Generated {period.value} balance sheet as of {cutoff.date().isoformat()}",
            )

            logger.info(
                "balance_sheet_generated",
                extra={
                    "statement_id": str(snapshot.id),
                    "statement_number": snapshot.statement_number,
                    "total_assets": statement.assets.total_assets,
                    "total_liabilities": statement.liabilities.total_liabilities,
                    "total_equity": statement.equity.total_equity,
                    "is_balanced": snapshot.is_balanced,
                    "degradation_count": len(context.degradations),
                },
            )
            return snapshot

    def _assemble(self, context: GenerationContext, start: datetime) -> BalanceSheetStatement:
        resolver = ChartResolver(self._chart, context, self._config)
        aggregator = BalanceAggregator(self._ledger, self._chart, resolver, context)
        retained_earnings = RetainedEarningsResolver(
            self._snapshots, self._profit_and_loss, self._ledger, resolver, context
        )
        assembler = StatementAssembler(
            resolver, aggregator, self._ledger, retained_earnings, context, self._config
        )

        assets = assembler.assets()
        liabilities = assembler.liabilities()
        equity = assembler.equity()

        statement = BalanceSheetStatement(
            tenant_id=context.tenant_id,
            statement_date=context.cutoff,
            period_type=context.period_type.value,
            period_start=start,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            ratios=compute_ratios(assets, liabilities, equity),
        )
        if not statement.is_balanced(self._config.balance_tolerance):
            logger.warning(
                "balance_sheet_out_of_balance",
                extra={"imbalance": statement.imbalance},
            )
        return statement

    def _persist(
        self,
        statement: BalanceSheetStatement,
        context: GenerationContext,
        requested_by: str,
    ) -> StatementSnapshot:
        """Insert the snapshot, moving to the next number on a number collision."""
        tenant_id = statement.tenant_id
        number = self._numbering.reserve(tenant_id, statement.period_type, statement.statement_date)
        attempts = self._config.max_number_retries

        for attempt in range(1, attempts + 1):
            snapshot = StatementSnapshot(
                tenant_id=tenant_id,
                statement_number=number,
                statement_date=statement.statement_date,
                period_type=statement.period_type,
                period_start=statement.period_start,
                status=StatementStatus.DRAFT.value,
                assets=render_to_dict(statement.assets),
                liabilities=render_to_dict(statement.liabilities),
                equity=render_to_dict(statement.equity),
                ratios=render_to_dict(statement.ratios),
                degradations=[d.to_dict() for d in context.degradations],
                is_balanced=statement.is_balanced(self._config.balance_tolerance),
                generated_by=requested_by,
                generated_at=self._clock.now_utc(),
                version=1,
            )

            outcome = self._store.insert_if_absent(snapshot)
            if outcome is InsertOutcome.INSERTED:
                return snapshot
            if outcome is InsertOutcome.PERIOD_TAKEN:
                raise DuplicatePeriodError(
                    tenant_id, statement.period_type, statement.period_start.isoformat()
                )

            logger.info(
                "statement_number_collision",
                extra={"statement_number": number, "attempt": attempt},
            )
            if attempt < attempts:
                number = self._numbering.next_after(tenant_id, number)

        raise NumberAllocationError(
            statement_number_prefix(statement.period_type, statement.statement_date),
            attempts,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def _load(self, tenant_id: str, statement_id: UUID | str, operation: str) -> StatementSnapshot:
        tenant_id = _require_tenant(tenant_id, operation)
        try:
            snapshot_id = statement_id if isinstance(statement_id, UUID) else UUID(str(statement_id))
        except ValueError:
            raise StatementNotFoundError(tenant_id, str(statement_id)) from None

        snapshot = self._snapshots.find_by_id(tenant_id, snapshot_id)
        if snapshot is None:
            raise StatementNotFoundError(tenant_id, str(statement_id))
        return snapshot

    def get_by_id(self, tenant_id: str, statement_id: UUID | str) -> StatementSnapshot:
        return self._load(tenant_id, statement_id, "get_by_id")

    def get_by_number(self, tenant_id: str, statement_number: str) -> StatementSnapshot:
        tenant_id = _require_tenant(tenant_id, "get_by_number")
        snapshot = self._snapshots.find_by_number(tenant_id, statement_number)
        if snapshot is None:
            raise StatementNotFoundError(tenant_id, statement_number)
        return snapshot

    def get_latest(
        self,
        tenant_id: str,
        period_type: str | PeriodType = PeriodType.MONTHLY,
    ) -> StatementSnapshot | None:
        tenant_id = _require_tenant(tenant_id, "get_latest")
        return self._snapshots.find_latest_by_period_type(
            tenant_id, coerce_period_type(period_type).value
        )

    def list_statements(
        self,
        tenant_id: str,
        status: str | StatementStatus | None = None,
        period_type: str | PeriodType | None = None,
        start: str | date | datetime | None = None,
        end: str | date | datetime | None = None,
    ) -> list[StatementSnapshot]:
        """Snapshots newest first; start and end bound the statement date inclusively."""
        tenant_id = _require_tenant(tenant_id, "list_statements")
        return self._snapshots.list_statements(
            tenant_id,
            status=StatementStatus(status).value if status is not None else None,
            period_type=coerce_period_type(period_type).value if period_type is not None else None,
            start=parse_range_start(start) if start is not None else None,
            end=parse_cutoff(end) if end is not None else None,
        )

    def stats(
        self,
        tenant_id: str,
        start: str | date | datetime | None = None,
        end: str | date | datetime | None = None,
    ) -> StatementStats:
        tenant_id = _require_tenant(tenant_id, "stats")
        return self._snapshots.stats(
            tenant_id,
            start=parse_range_start(start) if start is not None else None,
            end=parse_cutoff(end) if end is not None else None,
        )

    def audit_trail(self, tenant_id: str, statement_id: UUID | str) -> list[StatementAuditEntry]:
        return self._audit.trail(self._load(tenant_id, statement_id, "audit_trail"))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def update_status(
        self,
        tenant_id: str,
        statement_id: UUID | str,
        new_status: str | StatementStatus,
        performed_by: str,
        notes: str | None = None,
    ) -> StatementSnapshot:
        """
        Move a snapshot along the review workflow.

        ``notes`` go into the audit entry, not onto the snapshot.
        """
        snapshot = self._load(tenant_id, statement_id, "update_status")
        current = snapshot.status
        target = new_status.value if isinstance(new_status, StatementStatus) else str(new_status)

        transition = STATEMENT_REVIEW_WORKFLOW.transition_for(current, target)
        if transition is None:
            logger.warning(
                "status_transition_rejected",
                extra={
                    "statement_id": str(snapshot.id),
                    "from_status": current,
                    "to_status": target,
                    "allowed": list(STATEMENT_REVIEW_WORKFLOW.targets(current)),
                },
            )
            raise InvalidStatusTransitionError(str(snapshot.id), current, target)

        with LogContext.bind(
            tenant_id=snapshot.tenant_id, statement_id=str(snapshot.id), actor_id=performed_by
        ):
            self._store.set_status(snapshot, target, performed_by, self._clock.now_utc())
            self._audit.append(
                snapshot,
                transition.audit_action,
                performed_by,
                details=notes,
                changes={"status": {"from": current, "to": target}},
            )
            logger.info(
                "balance_sheet_status_changed",
                extra={
                    "statement_number": snapshot.statement_number,
                    "from_status": current,
                    "to_status": target,
                    "workflow_action": transition.action,
                },
            )
        return snapshot

    def reject(
        self,
        tenant_id: str,
        statement_id: UUID | str,
        performed_by: str,
        notes: str | None = None,
    ) -> StatementSnapshot:
        """
        Record a reviewer's rejection of a statement under review.

        The status is left as it is: workflow moves are one-way, and a
        corrected statement is a new snapshot.  The reason goes into the
        ``rejected`` audit entry.

        Raises:
            InvalidStatusTransitionError: If the snapshot is not under review.
        """
        snapshot = self._load(tenant_id, statement_id, "reject")
        if snapshot.status not in REJECTABLE_STATES:
            logger.warning(
                "statement_rejection_refused",
                extra={"statement_id": str(snapshot.id), "status": snapshot.status},
            )
            raise InvalidStatusTransitionError(
                str(snapshot.id), snapshot.status, AuditAction.REJECTED.value
            )

        with LogContext.bind(
            tenant_id=snapshot.tenant_id, statement_id=str(snapshot.id), actor_id=performed_by
        ):
            entry = self._audit.append(snapshot, AuditAction.REJECTED, performed_by, details=notes)
            logger.info(
                "balance_sheet_rejected",
                extra={"statement_number": snapshot.statement_number, "seq": entry.seq},
            )
        return snapshot

    def update_draft(
        self,
        tenant_id: str,
        statement_id: UUID | str,
        patch: dict[str, Any],
        performed_by: str,
    ) -> StatementSnapshot:
        """
        Edit a draft snapshot.

        ``patch`` may carry ``notes`` and partial ``assets`` / ``liabilities``
        / ``equity`` documents.  Patched leaves are merged into the stored
        sections, every total is recomputed from the leaves, and ratios and
        the balance check are refreshed.  Totals in the patch are ignored.

        Raises:
            ImmutableStateError: If the snapshot is not a draft.
            ValueError: If the patch names a field that cannot be edited or
                a leaf is not a number.
        """
        snapshot = self._load(tenant_id, statement_id, "update_draft")
        self._store.require_draft(snapshot, "update")

        unknown = set(patch) - DRAFT_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {sorted(unknown)}")
        for section in ("assets", "liabilities", "equity"):
            if section in patch and not isinstance(patch[section], dict):
                raise ValueError(f"{section} must be an object")

        assets = recompose_assets(
            section_from_dict(Assets, merge_patch(snapshot.assets, patch.get("assets", {})))
        )
        liabilities = recompose_liabilities(
            section_from_dict(
                Liabilities, merge_patch(snapshot.liabilities, patch.get("liabilities", {}))
            )
        )
        equity = recompose_equity(
            section_from_dict(Equity, merge_patch(snapshot.equity, patch.get("equity", {})))
        )
        statement = BalanceSheetStatement(
            tenant_id=snapshot.tenant_id,
            statement_date=snapshot.statement_date,
            period_type=snapshot.period_type,
            period_start=snapshot.period_start,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            ratios=compute_ratios(assets, liabilities, equity),
        )

        values: dict[str, Any] = {
            "assets": render_to_dict(assets),
            "liabilities": render_to_dict(liabilities),
            "equity": render_to_dict(equity),
            "ratios": render_to_dict(statement.ratios),
            "is_balanced": statement.is_balanced(self._config.balance_tolerance),
        }
        if "notes" in patch:
            values["notes"] = patch["notes"]

        before = {
            "notes": snapshot.notes,
            "assets": snapshot.assets,
            "liabilities": snapshot.liabilities,
            "equity": snapshot.equity,
        }
        after = {key: values.get(key, before[key]) for key in before}
        changes = diff_documents(before, after)

        with LogContext.bind(
            tenant_id=snapshot.tenant_id, statement_id=str(snapshot.id), actor_id=performed_by
        ):
            self._store.update_if_draft(snapshot, values, performed_by, self._clock.now_utc())
            self._audit.append(
                snapshot,
                AuditAction.UPDATED,
                performed_by,
                details=f"Draft updated to version {snapshot.version}",
                changes=changes,
            )
            logger.info(
                "balance_sheet_draft_updated",
                extra={
                    "statement_number": snapshot.statement_number,
                    "version": snapshot.version,
                    "changed_fields": sorted(changes),
                },
            )
        return snapshot

    def delete(self, tenant_id: str, statement_id: UUID | str) -> None:
        """Delete a draft snapshot together with its audit trail."""
        snapshot = self._load(tenant_id, statement_id, "delete")
        statement_number = snapshot.statement_number
        self._store.delete_if_draft(snapshot)
        logger.info(
            "balance_sheet_deleted",
            extra={
                "tenant_id": snapshot.tenant_id,
                "statement_id": str(snapshot.id),
                "statement_number": statement_number,
            },
        )

    def append_audit(
        self,
        tenant_id: str,
        statement_id: UUID | str,
        action: str | AuditAction,
        performed_by: str,
        details: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> StatementAuditEntry:
        """Record an event (viewed, exported, ...) that does not change the snapshot."""
        snapshot = self._load(tenant_id, statement_id, "append_audit")
        return self._audit.append(snapshot, action, performed_by, details=details, changes=changes)

    # =========================================================================
    # Comparison
    # =========================================================================

    def compare(
        self,
        tenant_id: str,
        statement_id: UUID | str,
        baseline_kind: str | BaselineKind = BaselineKind.PREVIOUS,
    ) -> ComparisonResult | None:
        """
        Compare a snapshot's totals with a baseline snapshot.

        ``previous`` is the latest snapshot of the same period type dated
        before this one; ``year_ago`` is one dated within a day after
        exactly one year earlier.  Returns None when there is no baseline.

        Raises:
            ValueError: For an unknown baseline kind.
        """
        tenant_id = _require_tenant(tenant_id, "compare")
        kind = coerce_baseline_kind(baseline_kind)
        snapshot = self._load(tenant_id, statement_id, "compare")

        if kind is BaselineKind.PREVIOUS:
            baseline = self._snapshots.find_previous(
                snapshot.tenant_id, snapshot.period_type, snapshot.statement_date
            )
        else:
            window_start, window_end = year_ago_window(snapshot.statement_date)
            baseline = self._snapshots.find_in_window(
                snapshot.tenant_id, snapshot.period_type, window_start, window_end
            )

        if baseline is None:
            logger.info(
                "comparison_baseline_missing",
                extra={
                    "tenant_id": snapshot.tenant_id,
                    "statement_id": str(snapshot.id),
                    "baseline_kind": kind.value,
                },
            )
            return None

        return compare_snapshots(snapshot, baseline, kind)

    # =========================================================================
    # Serialization
    # =========================================================================

    @staticmethod
    def to_dict(snapshot: StatementSnapshot) -> dict[str, Any]:
        """Plain-dict view of a snapshot for API responses."""
        return render_to_dict({
            "id": snapshot.id,
            "tenant_id": snapshot.tenant_id,
            "statement_number": snapshot.statement_number,
            "statement_date": snapshot.statement_date,
            "period_type": snapshot.period_type,
            "period_start": snapshot.period_start,
            "status": snapshot.status,
            "assets": snapshot.assets,
            "liabilities": snapshot.liabilities,
            "equity": snapshot.equity,
            "ratios": snapshot.ratios,
            "degradations": snapshot.degradations,
            "is_balanced": snapshot.is_balanced,
            "generated_by": snapshot.generated_by,
            "generated_at": snapshot.generated_at,
            "updated_by": snapshot.updated_by,
            "updated_at": snapshot.updated_at,
            "version": snapshot.version,
            "notes": snapshot.notes,
        })
