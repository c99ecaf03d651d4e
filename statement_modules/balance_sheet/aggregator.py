"""
Balance aggregator -- point-in-time account balances derived from the ledger.

    balance = opening_balance + movement on the normal side of all
              completed transactions with occurred_at <= cutoff

credit-normal accounts move by (credit - debit), debit-normal by
(debit - credit).  One SUM query per account; nothing is cached across
generations and nothing is stored.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from statement_kernel.db.types import ZERO, normalize_account_code
from statement_kernel.logging_config import get_logger
from statement_kernel.models.account import AccountRole
from statement_kernel.selectors.chart_selector import AccountInfo, ChartSelector
from statement_kernel.selectors.ledger_selector import LedgerSelector
from statement_modules.balance_sheet.chart_resolver import ChartResolver
from statement_modules.balance_sheet.context import GenerationContext

logger = get_logger("modules.balance_sheet.aggregator")


class BalanceAggregator:
    """
    Computes account balances as of a cutoff.

    A failing query for one account degrades that account to zero and is
    recorded on the context; it does not abort the statement.
    """

    def __init__(
        self,
        ledger: LedgerSelector,
        chart: ChartSelector,
        resolver: ChartResolver,
        context: GenerationContext,
    ):
        self._ledger = ledger
        self._chart = chart
        self._resolver = resolver
        self._context = context

    def balance(self, account_code: str, cutoff: datetime | None = None) -> Decimal:
        """Balance of the account with this code; 0 if it is not visible."""
        code = normalize_account_code(account_code)
        account = self._chart.find_by_code(self._context.tenant_id, code)
        if account is None:
            logger.debug(
                "account_not_found",
                extra={"tenant_id": self._context.tenant_id, "account_code": code},
            )
            return ZERO
        return self.balance_of(account, cutoff)

    def balance_of(self, account: AccountInfo, cutoff: datetime | None = None) -> Decimal:
        cutoff = cutoff or self._context.cutoff
        try:
            totals = self._ledger.sum_debits_credits(
                self._context.tenant_id, account.code, cutoff
            )
        except (SQLAlchemyError, ArithmeticError, ValueError) as exc:
            self._context.record_degradation("account_balance", exc, account_code=account.code)
            return ZERO
        return account.opening_balance + totals.natural(account.is_credit_normal)

    def side_balance(self, account: AccountInfo, side: str) -> Decimal:
        """Balance read on the given side; negative for contra accounts."""
        balance = self.balance_of(account)
        return balance if account.normal_balance == side else -balance

    def role_balance(self, role: AccountRole | str) -> Decimal:
        """Balance of the account playing role; 0 when the role is unmapped."""
        account = self._resolver.resolve_role(role)
        if account is None:
            return ZERO
        return self.balance_of(account)

    def total_of(self, accounts: list[AccountInfo]) -> Decimal:
        return sum((self.balance_of(a) for a in accounts), ZERO)
