"""
Module: statement_kernel.selectors.ledger_selector
Responsibility: Aggregate queries over ledger_transactions and sales_orders.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances.  Every figure is computed at query time from
      ledger rows with status == completed.
    - Cutoffs are inclusive; interval lower bounds are exclusive so that
      consecutive intervals never count a transaction twice.
    - All sums are Decimal (never float); an empty sum is Decimal("0").
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from statement_kernel.db.types import ZERO, normalize_account_code, to_decimal
from statement_kernel.models.account import AccountType, ChartAccount
from statement_kernel.models.ledger import (
    LedgerTransaction,
    OrderStatus,
    PaymentStatus,
    SalesOrder,
    TransactionStatus,
)
from statement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class DebitCreditTotals:
    """Raw debit and credit sums for one account."""

    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO

    def natural(self, credit_normal: bool) -> Decimal:
        """Movement expressed on the account's normal side."""
        if credit_normal:
            return self.credit_total - self.debit_total
        return self.debit_total - self.credit_total


class LedgerSelector(BaseSelector[LedgerTransaction]):
    """
    Selector for ledger aggregates -- the authoritative balance source.

    Only completed transactions count.  Pending and voided rows are
    invisible to every query here.
    """

    def _completed(self, tenant_id: str):
        return (
            LedgerTransaction.tenant_id == tenant_id,
            LedgerTransaction.status == TransactionStatus.COMPLETED.value,
        )

    def sum_debits_credits(
        self,
        tenant_id: str,
        account_code: str,
        cutoff: datetime,
        start_after: datetime | None = None,
    ) -> DebitCreditTotals:
        """
        SUM(debit) and SUM(credit) for one account up to and including cutoff.

        Args:
            tenant_id: Owning tenant.
            account_code: Account code (normalized before lookup).
            cutoff: Inclusive upper bound on occurred_at.
            start_after: Optional exclusive lower bound on occurred_at.
        """
        stmt = select(
            func.sum(LedgerTransaction.debit_amount),
            func.sum(LedgerTransaction.credit_amount),
        ).where(
            *self._completed(tenant_id),
            LedgerTransaction.account_code == normalize_account_code(account_code),
            LedgerTransaction.occurred_at <= cutoff,
        )
        if start_after is not None:
            stmt = stmt.where(LedgerTransaction.occurred_at > start_after)

        debit_total, credit_total = self.session.execute(stmt).one()
        return DebitCreditTotals(
            debit_total=to_decimal(debit_total),
            credit_total=to_decimal(credit_total),
        )

    def dividend_debits(
        self,
        tenant_id: str,
        account_codes: list[str],
        start_after: datetime,
        end: datetime,
    ) -> Decimal:
        """Total debits posted to the given accounts within (start_after, end]."""
        if not account_codes:
            return ZERO
        stmt = select(func.sum(LedgerTransaction.debit_amount)).where(
            *self._completed(tenant_id),
            LedgerTransaction.account_code.in_(
                [normalize_account_code(c) for c in account_codes]
            ),
            LedgerTransaction.occurred_at > start_after,
            LedgerTransaction.occurred_at <= end,
        )
        return to_decimal(self.session.scalar(stmt))

    def net_income_between(
        self,
        tenant_id: str,
        start_after: datetime,
        end: datetime,
    ) -> Decimal:
        """
        Revenue minus expenses recomputed from the ledger for (start_after, end].

        Revenue is measured credit-minus-debit and expenses debit-minus-credit,
        so contra accounts (sales returns, purchase discounts) net out.
        """
        stmt = (
            select(
                ChartAccount.account_type,
                func.sum(LedgerTransaction.debit_amount),
                func.sum(LedgerTransaction.credit_amount),
            )
            .join(
                ChartAccount,
                (ChartAccount.code == LedgerTransaction.account_code)
                & (ChartAccount.tenant_id == LedgerTransaction.tenant_id),
            )
            .where(
                *self._completed(tenant_id),
                ChartAccount.account_type.in_(
                    [AccountType.REVENUE.value, AccountType.EXPENSE.value]
                ),
                ChartAccount.is_active.is_(True),
                ChartAccount.is_system_account.is_(False),
                LedgerTransaction.occurred_at > start_after,
                LedgerTransaction.occurred_at <= end,
            )
            .group_by(ChartAccount.account_type)
        )

        revenue = ZERO
        expenses = ZERO
        for account_type, debit_total, credit_total in self.session.execute(stmt):
            totals = DebitCreditTotals(to_decimal(debit_total), to_decimal(credit_total))
            if account_type == AccountType.REVENUE.value:
                revenue += totals.natural(credit_normal=True)
            else:
                expenses += totals.natural(credit_normal=False)
        return revenue - expenses

    def deferred_revenue_total(self, tenant_id: str, cutoff: datetime) -> Decimal:
        """Paid orders not yet fulfilled, ordered at or before cutoff."""
        stmt = select(func.sum(SalesOrder.total)).where(
            SalesOrder.tenant_id == tenant_id,
            SalesOrder.status.in_(
                [OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value]
            ),
            SalesOrder.payment_status == PaymentStatus.COMPLETED.value,
            SalesOrder.ordered_at <= cutoff,
        )
        return to_decimal(self.session.scalar(stmt))
