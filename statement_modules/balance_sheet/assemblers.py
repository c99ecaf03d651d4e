"""
Statement assembler -- category calculators for assets, liabilities, equity.

Each calculator resolves accounts through the ChartResolver, prices them
with the BalanceAggregator and returns a frozen section dataclass.  Line
placement comes from the config's classification tables; no account name
or code is hard-wired here.

Degradation policy
------------------
Leaf calculators (cash, receivables, accrued expenses, ...) run through
``_leaf``: if one raises, the failure is logged and recorded on the
GenerationContext and the all-zero section is used instead.  Composing a
top-level section (assets, liabilities, equity) from its leaves is not
guarded that way; a failure there raises AggregationError and the
statement is not produced.

Clamping to >= 0 applies only where the line cannot be negative by
definition (inventory, payables, receivables, prepaid, debt buckets).
Net income and retained earnings are never clamped.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from decimal import Decimal
from typing import TypeVar

from statement_kernel.db.types import ZERO
from statement_kernel.exceptions import AggregationError
from statement_kernel.logging_config import get_logger
from statement_kernel.models.account import AccountRole, NormalBalance
from statement_kernel.selectors.chart_selector import AccountInfo
from statement_kernel.selectors.ledger_selector import LedgerSelector
from statement_modules.balance_sheet.aggregator import BalanceAggregator
from statement_modules.balance_sheet.chart_resolver import ChartResolver
from statement_modules.balance_sheet.config import BalanceSheetConfig
from statement_modules.balance_sheet.context import GenerationContext
from statement_modules.balance_sheet.models import (
    AccountsPayable,
    AccountsReceivable,
    AccruedExpenses,
    Assets,
    CashAndEquivalents,
    ContributedCapital,
    CurrentAssets,
    CurrentLiabilities,
    Equity,
    FixedAssets,
    IntangibleAssets,
    Inventory,
    Liabilities,
    LongTermDebt,
    LongTermLiabilities,
    OtherEquity,
    PropertyPlantEquipment,
    RetainedEarnings,
    ShortTermDebt,
)
from statement_modules.balance_sheet.retained_earnings import RetainedEarningsResolver

logger = get_logger("modules.balance_sheet.assemblers")

T = TypeVar("T")

DEBIT = NormalBalance.DEBIT.value
CREDIT = NormalBalance.CREDIT.value


def _positive(value: Decimal) -> Decimal:
    return max(ZERO, value)


class StatementAssembler:
    """Builds the three top-level sections for one GenerationContext."""

    def __init__(
        self,
        resolver: ChartResolver,
        aggregator: BalanceAggregator,
        ledger: LedgerSelector,
        retained_earnings: RetainedEarningsResolver,
        context: GenerationContext,
        config: BalanceSheetConfig,
    ):
        self._resolver = resolver
        self._aggregator = aggregator
        self._ledger = ledger
        self._retained_earnings = retained_earnings
        self._context = context
        self._config = config

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _leaf(self, component: str, calculate: Callable[[], T], fallback: Callable[[], T]) -> T:
        try:
            return calculate()
        except Exception as exc:
            self._context.record_degradation(component, exc)
            return fallback()

    def _top_level(self, section: str, build: Callable[[], T]) -> T:
        try:
            return build()
        except AggregationError:
            raise
        except Exception as exc:
            logger.error(
                "section_assembly_failed",
                extra={"tenant_id": self._context.tenant_id, "section": section},
                exc_info=True,
            )
            raise AggregationError(section, str(exc)) from exc

    def _bucketed(
        self,
        table_name: str,
        accounts: list[AccountInfo],
        side: str,
        clamp: bool = True,
    ) -> dict[str, Decimal]:
        """
        Sum account balances into the buckets of a classification table.

        Balances are read on the section's side (debit for assets, credit
        for liabilities and equity) so contra accounts reduce their bucket.
        """
        table = self._config.table(table_name)
        totals = {bucket: ZERO for bucket in table.buckets}
        for account in accounts:
            bucket = table.classify(account.name, account.code)
            totals[bucket] = totals.get(bucket, ZERO) + self._aggregator.side_balance(account, side)
        if clamp:
            totals = {bucket: _positive(v) for bucket, v in totals.items()}
        return totals

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def cash_and_equivalents(self) -> CashAndEquivalents:
        cash = self._aggregator.role_balance(AccountRole.CASH)
        bank = self._aggregator.role_balance(AccountRole.BANK)

        on_hand_account = self._resolver.first("cash_on_hand")
        if on_hand_account is not None:
            cash_on_hand = self._aggregator.balance_of(on_hand_account)
        else:
            cash_on_hand = _positive(cash)

        petty_cash = ZERO
        petty_account = self._resolver.first("petty_cash")
        if petty_account is not None and (
            on_hand_account is None or petty_account.code != on_hand_account.code
        ):
            petty_cash = self._aggregator.balance_of(petty_account)

        return CashAndEquivalents.of(cash_on_hand, _positive(bank), petty_cash)

    def accounts_receivable(self) -> AccountsReceivable:
        trade = _positive(self._aggregator.role_balance(AccountRole.ACCOUNTS_RECEIVABLE))
        allowance = trade * self._config.doubtful_accounts_rate
        return AccountsReceivable.of(trade, allowance)

    def inventory(self) -> Inventory:
        total = _positive(self._aggregator.role_balance(AccountRole.INVENTORY))
        raw = _positive(self._aggregator.total_of(self._resolver.find("raw_materials")))
        wip = _positive(self._aggregator.total_of(self._resolver.find("work_in_progress")))
        finished = _positive(total - raw - wip)
        return Inventory(raw, wip, finished, total)

    def prepaid_expenses(self) -> Decimal:
        accounts = {a.code: a for a in self._resolver.find("prepaid_expenses")}
        for account in self._resolver.find("prepaid_by_name"):
            accounts.setdefault(account.code, account)
        return _positive(self._aggregator.total_of(list(accounts.values())))

    def property_plant_equipment(self) -> PropertyPlantEquipment:
        buckets = self._bucketed("fixed_assets", self._resolver.find("fixed_assets"), DEBIT)
        return PropertyPlantEquipment.of(**buckets)

    def accumulated_depreciation(self) -> Decimal:
        return sum(
            (abs(self._aggregator.balance_of(a)) for a in self._resolver.find("accumulated_depreciation")),
            ZERO,
        )

    def intangible_assets(self) -> IntangibleAssets:
        buckets = self._bucketed("intangibles", self._resolver.find("intangibles"), DEBIT)
        return IntangibleAssets.of(**buckets)

    def long_term_investments(self) -> Decimal:
        return _positive(self._aggregator.total_of(self._resolver.find("investments")))

    def other_assets(self) -> Decimal:
        return _positive(self._aggregator.total_of(self._resolver.find("other_assets")))

    def assets(self) -> Assets:
        def build() -> Assets:
            current = CurrentAssets.of(
                cash_and_equivalents=self._leaf("cash_and_equivalents", self.cash_and_equivalents, CashAndEquivalents),
                accounts_receivable=self._leaf("accounts_receivable", self.accounts_receivable, AccountsReceivable),
                inventory=self._leaf("inventory", self.inventory, Inventory),
                prepaid_expenses=self._leaf("prepaid_expenses", self.prepaid_expenses, Decimal),
            )
            fixed = FixedAssets.of(
                property_plant_equipment=self._leaf(
                    "property_plant_equipment", self.property_plant_equipment, PropertyPlantEquipment
                ),
                accumulated_depreciation=self._leaf(
                    "accumulated_depreciation", self.accumulated_depreciation, Decimal
                ),
                intangible_assets=self._leaf("intangible_assets", self.intangible_assets, IntangibleAssets),
                long_term_investments=self._leaf("long_term_investments", self.long_term_investments, Decimal),
                other_assets=self._leaf("other_assets", self.other_assets, Decimal),
            )
            return Assets.of(current, fixed)

        return self._top_level("assets", build)

    # ------------------------------------------------------------------
    # Liabilities
    # ------------------------------------------------------------------

    def accounts_payable(self) -> AccountsPayable:
        return AccountsPayable.of(_positive(self._aggregator.role_balance(AccountRole.ACCOUNTS_PAYABLE)))

    def accrued_expenses(self) -> AccruedExpenses:
        buckets = self._bucketed("accrued_expenses", self._resolver.find("accrued_expenses"), CREDIT)

        sales_tax = self._resolver.resolve_role(AccountRole.SALES_TAX_PAYABLE)
        if sales_tax is not None and re.search(
            self._config.sales_tax_name_pattern, sales_tax.name, re.IGNORECASE
        ):
            if sales_tax.category != "accrued_expenses":
                buckets["taxes_payable"] = buckets.get("taxes_payable", ZERO) + _positive(
                    self._aggregator.balance_of(sales_tax)
                )
        return AccruedExpenses.of(**buckets)

    def short_term_debt(self) -> ShortTermDebt:
        buckets = self._bucketed("short_term_debt", self._resolver.find("short_term_debt"), CREDIT)
        return ShortTermDebt.of(**buckets)

    def deferred_revenue(self) -> Decimal:
        return _positive(
            self._ledger.deferred_revenue_total(self._context.tenant_id, self._context.cutoff)
        )

    def long_term_debt(self) -> LongTermDebt:
        buckets = self._bucketed("long_term_debt", self._resolver.find("long_term_debt"), CREDIT)
        return LongTermDebt.of(**buckets)

    def deferred_tax_liabilities(self) -> Decimal:
        return _positive(self._aggregator.total_of(self._resolver.find("deferred_tax")))

    def pension_liabilities(self) -> Decimal:
        return _positive(self._aggregator.total_of(self._resolver.find("pension")))

    def other_long_term_liabilities(self) -> Decimal:
        return _positive(self._aggregator.total_of(self._resolver.find("other_long_term")))

    def liabilities(self) -> Liabilities:
        def build() -> Liabilities:
            current = CurrentLiabilities.of(
                accounts_payable=self._leaf("accounts_payable", self.accounts_payable, AccountsPayable),
                accrued_expenses=self._leaf("accrued_expenses", self.accrued_expenses, AccruedExpenses),
                short_term_debt=self._leaf("short_term_debt", self.short_term_debt, ShortTermDebt),
                deferred_revenue=self._leaf("deferred_revenue", self.deferred_revenue, Decimal),
            )
            long_term = LongTermLiabilities.of(
                long_term_debt=self._leaf("long_term_debt", self.long_term_debt, LongTermDebt),
                deferred_tax_liabilities=self._leaf(
                    "deferred_tax_liabilities", self.deferred_tax_liabilities, Decimal
                ),
                pension_liabilities=self._leaf("pension_liabilities", self.pension_liabilities, Decimal),
                other_long_term_liabilities=self._leaf(
                    "other_long_term_liabilities", self.other_long_term_liabilities, Decimal
                ),
            )
            return Liabilities.of(current, long_term)

        return self._top_level("liabilities", build)

    # ------------------------------------------------------------------
    # Equity
    # ------------------------------------------------------------------

    def contributed_capital(self) -> ContributedCapital:
        buckets = self._bucketed("contributed_capital", self._resolver.find("contributed_capital"), CREDIT, clamp=False)
        return ContributedCapital.of(**buckets)

    def other_equity(self) -> OtherEquity:
        buckets = self._bucketed("other_equity", self._resolver.find("other_equity"), CREDIT, clamp=False)
        return OtherEquity.of(**buckets)

    def equity(self) -> Equity:
        def build() -> Equity:
            return Equity.of(
                contributed_capital=self._leaf("contributed_capital", self.contributed_capital, ContributedCapital),
                retained_earnings=self._retained_earnings.resolve(),
                other_equity=self._leaf("other_equity", self.other_equity, OtherEquity),
            )

        return self._top_level("equity", build)


# ----------------------------------------------------------------------
# Recomposition (draft edits)
# ----------------------------------------------------------------------


def recompose_assets(assets: Assets) -> Assets:
    """Recompute every total of an asset section from its leaves."""
    current = assets.current_assets
    cash = current.cash_and_equivalents
    receivables = current.accounts_receivable
    inventory = current.inventory
    fixed = assets.fixed_assets
    ppe = fixed.property_plant_equipment
    intangibles = fixed.intangible_assets
    return Assets.of(
        CurrentAssets.of(
            CashAndEquivalents.of(cash.cash_on_hand, cash.bank_accounts, cash.petty_cash),
            AccountsReceivable.of(
                receivables.trade_receivables,
                receivables.allowance_for_doubtful_accounts,
                receivables.other_receivables,
            ),
            Inventory.of(inventory.raw_materials, inventory.work_in_progress, inventory.finished_goods),
            current.prepaid_expenses,
            current.other_current_assets,
        ),
        FixedAssets.of(
            PropertyPlantEquipment.of(
                land=ppe.land,
                buildings=ppe.buildings,
                equipment=ppe.equipment,
                vehicles=ppe.vehicles,
                furniture_and_fixtures=ppe.furniture_and_fixtures,
                computer_equipment=ppe.computer_equipment,
            ),
            fixed.accumulated_depreciation,
            IntangibleAssets.of(
                goodwill=intangibles.goodwill,
                patents=intangibles.patents,
                trademarks=intangibles.trademarks,
                software=intangibles.software,
            ),
            fixed.long_term_investments,
            fixed.other_assets,
        ),
    )


def recompose_liabilities(liabilities: Liabilities) -> Liabilities:
    current = liabilities.current_liabilities
    payable = current.accounts_payable
    accrued = current.accrued_expenses
    short = current.short_term_debt
    long_term = liabilities.long_term_liabilities
    debt = long_term.long_term_debt
    return Liabilities.of(
        CurrentLiabilities.of(
            AccountsPayable.of(payable.trade_payables, payable.other_payables),
            AccruedExpenses.of(
                salaries_payable=accrued.salaries_payable,
                utilities_payable=accrued.utilities_payable,
                rent_payable=accrued.rent_payable,
                taxes_payable=accrued.taxes_payable,
                interest_payable=accrued.interest_payable,
                other_accrued=accrued.other_accrued,
            ),
            ShortTermDebt.of(
                credit_lines=short.credit_lines,
                short_term_loans=short.short_term_loans,
                credit_card_debt=short.credit_card_debt,
            ),
            current.deferred_revenue,
            current.current_portion_long_term_debt,
        ),
        LongTermLiabilities.of(
            LongTermDebt.of(
                mortgages=debt.mortgages,
                long_term_loans=debt.long_term_loans,
                bonds_payable=debt.bonds_payable,
            ),
            long_term.deferred_tax_liabilities,
            long_term.pension_liabilities,
            long_term.other_long_term_liabilities,
        ),
    )


def recompose_equity(equity: Equity) -> Equity:
    capital = equity.contributed_capital
    retained = equity.retained_earnings
    other = equity.other_equity
    return Equity.of(
        ContributedCapital.of(
            common_stock=capital.common_stock,
            preferred_stock=capital.preferred_stock,
            additional_paid_in_capital=capital.additional_paid_in_capital,
        ),
        RetainedEarnings.of(
            retained.beginning_balance,
            retained.current_period_earnings,
            retained.dividends_paid,
        ),
        OtherEquity.of(
            treasury_stock=other.treasury_stock,
            accumulated_other_comprehensive_income=other.accumulated_other_comprehensive_income,
        ),
    )
