"""
Period chain resolver -- carries retained earnings from one statement to the next.

    beginning  = ending retained earnings of the latest snapshot of the same
                 tenant and period type dated strictly before the cutoff
                 (0 when there is none)
    earnings   = net income for (cutoff - one period, cutoff]
    dividends  = debits to dividend accounts over the same interval, >= 0
    ending     = beginning + earnings - dividends

Earnings come from an approved or published P&L covering the interval
when one exists; otherwise they are recomputed from revenue and expense
movements in the ledger, which is also the fallback when the P&L lookup
fails.  The interval is open at the bottom so chained statements never
count a boundary transaction twice.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from statement_kernel.db.types import ZERO, to_decimal
from statement_kernel.domain.periods import previous_period_boundary
from statement_kernel.logging_config import get_logger
from statement_kernel.selectors.ledger_selector import LedgerSelector
from statement_kernel.selectors.profit_and_loss_selector import ProfitAndLossSelector
from statement_kernel.selectors.snapshot_selector import SnapshotSelector
from statement_modules.balance_sheet.chart_resolver import ChartResolver
from statement_modules.balance_sheet.context import GenerationContext
from statement_modules.balance_sheet.models import RetainedEarnings

logger = get_logger("modules.balance_sheet.retained_earnings")


class RetainedEarningsResolver:
    def __init__(
        self,
        snapshots: SnapshotSelector,
        profit_and_loss: ProfitAndLossSelector,
        ledger: LedgerSelector,
        resolver: ChartResolver,
        context: GenerationContext,
    ):
        self._snapshots = snapshots
        self._profit_and_loss = profit_and_loss
        self._ledger = ledger
        self._resolver = resolver
        self._context = context

    def resolve(self) -> RetainedEarnings:
        ctx = self._context
        interval_start = previous_period_boundary(ctx.cutoff, ctx.period_type)

        beginning = self.beginning_balance()
        earnings = self.current_period_earnings(interval_start)
        dividends = self.dividends_paid(interval_start)

        retained = RetainedEarnings.of(beginning, earnings, dividends)
        logger.debug(
            "retained_earnings_resolved",
            extra={
                "tenant_id": ctx.tenant_id,
                "beginning_balance": retained.beginning_balance,
                "current_period_earnings": retained.current_period_earnings,
                "dividends_paid": retained.dividends_paid,
                "ending_balance": retained.ending_balance,
            },
        )
        return retained

    def beginning_balance(self) -> Decimal:
        ctx = self._context
        previous = self._snapshots.find_previous(
            ctx.tenant_id, ctx.period_type.value, ctx.cutoff
        )
        if previous is None:
            return ZERO
        retained = (previous.equity or {}).get("retained_earnings", {})
        return to_decimal(retained.get("ending_balance"))

    def current_period_earnings(self, interval_start: datetime) -> Decimal:
        ctx = self._context
        try:
            published = self._profit_and_loss.find_published(
                ctx.tenant_id, interval_start, ctx.cutoff
            )
        except Exception as exc:
            ctx.record_degradation("published_profit_and_loss", exc)
            published = None

        if published is not None:
            logger.debug(
                "earnings_from_published_statement",
                extra={"tenant_id": ctx.tenant_id, "net_income": published},
            )
            return to_decimal(published)

        try:
            return self._ledger.net_income_between(ctx.tenant_id, interval_start, ctx.cutoff)
        except Exception as exc:
            ctx.record_degradation("current_period_earnings", exc)
            return ZERO

    def dividends_paid(self, interval_start: datetime) -> Decimal:
        ctx = self._context
        try:
            codes = [a.code for a in self._resolver.find("dividends")]
            total = self._ledger.dividend_debits(ctx.tenant_id, codes, interval_start, ctx.cutoff)
        except Exception as exc:
            ctx.record_degradation("dividends_paid", exc)
            return ZERO
        return max(ZERO, total)
