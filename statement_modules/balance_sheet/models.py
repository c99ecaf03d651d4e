"""
Balance Sheet Domain Models (``statement_modules.balance_sheet.models``).

Responsibility
--------------
Frozen dataclass value objects for an assembled balance sheet: the asset,
liability and equity sections with their sub-sections, the ratio block,
and the result of a period comparison.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
assemblers, serialized by ``statements.render_to_dict`` into the JSON
columns of ``StatementSnapshot`` and parsed back by
``statements.section_from_dict``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Every numeric leaf is a ``Decimal`` defaulting to ``Decimal("0")``; an
  absent figure is zero, never missing.
* Totals are stored fields, computed by the ``of()`` constructors from
  their parts, so a serialized statement is self-describing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

ZERO = Decimal("0")


def _sum(*parts: Decimal) -> Decimal:
    return sum(parts, ZERO)


# =========================================================================
# Assets
# =========================================================================


@dataclass(frozen=True)
class CashAndEquivalents:
    cash_on_hand: Decimal = ZERO
    bank_accounts: Decimal = ZERO
    petty_cash: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, cash_on_hand: Decimal, bank_accounts: Decimal, petty_cash: Decimal) -> CashAndEquivalents:
        return cls(cash_on_hand, bank_accounts, petty_cash, _sum(cash_on_hand, bank_accounts, petty_cash))


@dataclass(frozen=True)
class AccountsReceivable:
    trade_receivables: Decimal = ZERO
    allowance_for_doubtful_accounts: Decimal = ZERO
    other_receivables: Decimal = ZERO
    net_receivables: Decimal = ZERO

    @classmethod
    def of(cls, trade: Decimal, allowance: Decimal, other: Decimal = ZERO) -> AccountsReceivable:
        return cls(trade, allowance, other, trade - allowance + other)


@dataclass(frozen=True)
class Inventory:
    raw_materials: Decimal = ZERO
    work_in_progress: Decimal = ZERO
    finished_goods: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, raw_materials: Decimal, work_in_progress: Decimal, finished_goods: Decimal) -> Inventory:
        return cls(
            raw_materials,
            work_in_progress,
            finished_goods,
            _sum(raw_materials, work_in_progress, finished_goods),
        )


@dataclass(frozen=True)
class CurrentAssets:
    cash_and_equivalents: CashAndEquivalents = field(default_factory=CashAndEquivalents)
    accounts_receivable: AccountsReceivable = field(default_factory=AccountsReceivable)
    inventory: Inventory = field(default_factory=Inventory)
    prepaid_expenses: Decimal = ZERO
    other_current_assets: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(
        cls,
        cash_and_equivalents: CashAndEquivalents,
        accounts_receivable: AccountsReceivable,
        inventory: Inventory,
        prepaid_expenses: Decimal,
        other_current_assets: Decimal = ZERO,
    ) -> CurrentAssets:
        return cls(
            cash_and_equivalents,
            accounts_receivable,
            inventory,
            prepaid_expenses,
            other_current_assets,
            _sum(
                cash_and_equivalents.total,
                accounts_receivable.net_receivables,
                inventory.total,
                prepaid_expenses,
                other_current_assets,
            ),
        )


@dataclass(frozen=True)
class PropertyPlantEquipment:
    land: Decimal = ZERO
    buildings: Decimal = ZERO
    equipment: Decimal = ZERO
    vehicles: Decimal = ZERO
    furniture_and_fixtures: Decimal = ZERO
    computer_equipment: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> PropertyPlantEquipment:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class IntangibleAssets:
    goodwill: Decimal = ZERO
    patents: Decimal = ZERO
    trademarks: Decimal = ZERO
    software: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> IntangibleAssets:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class FixedAssets:
    property_plant_equipment: PropertyPlantEquipment = field(default_factory=PropertyPlantEquipment)
    accumulated_depreciation: Decimal = ZERO
    net_fixed_assets: Decimal = ZERO
    intangible_assets: IntangibleAssets = field(default_factory=IntangibleAssets)
    long_term_investments: Decimal = ZERO
    other_assets: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(
        cls,
        property_plant_equipment: PropertyPlantEquipment,
        accumulated_depreciation: Decimal,
        intangible_assets: IntangibleAssets,
        long_term_investments: Decimal,
        other_assets: Decimal,
    ) -> FixedAssets:
        net = property_plant_equipment.total - accumulated_depreciation
        return cls(
            property_plant_equipment,
            accumulated_depreciation,
            net,
            intangible_assets,
            long_term_investments,
            other_assets,
            _sum(net, intangible_assets.total, long_term_investments, other_assets),
        )


@dataclass(frozen=True)
class Assets:
    current_assets: CurrentAssets = field(default_factory=CurrentAssets)
    fixed_assets: FixedAssets = field(default_factory=FixedAssets)
    total_assets: Decimal = ZERO

    @classmethod
    def of(cls, current_assets: CurrentAssets, fixed_assets: FixedAssets) -> Assets:
        return cls(current_assets, fixed_assets, current_assets.total + fixed_assets.total)


# =========================================================================
# Liabilities
# =========================================================================


@dataclass(frozen=True)
class AccountsPayable:
    trade_payables: Decimal = ZERO
    other_payables: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, trade_payables: Decimal, other_payables: Decimal = ZERO) -> AccountsPayable:
        return cls(trade_payables, other_payables, trade_payables + other_payables)


@dataclass(frozen=True)
class AccruedExpenses:
    salaries_payable: Decimal = ZERO
    utilities_payable: Decimal = ZERO
    rent_payable: Decimal = ZERO
    taxes_payable: Decimal = ZERO
    interest_payable: Decimal = ZERO
    other_accrued: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> AccruedExpenses:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class ShortTermDebt:
    credit_lines: Decimal = ZERO
    short_term_loans: Decimal = ZERO
    credit_card_debt: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> ShortTermDebt:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class CurrentLiabilities:
    accounts_payable: AccountsPayable = field(default_factory=AccountsPayable)
    accrued_expenses: AccruedExpenses = field(default_factory=AccruedExpenses)
    short_term_debt: ShortTermDebt = field(default_factory=ShortTermDebt)
    deferred_revenue: Decimal = ZERO
    current_portion_long_term_debt: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(
        cls,
        accounts_payable: AccountsPayable,
        accrued_expenses: AccruedExpenses,
        short_term_debt: ShortTermDebt,
        deferred_revenue: Decimal,
        current_portion_long_term_debt: Decimal = ZERO,
    ) -> CurrentLiabilities:
        return cls(
            accounts_payable,
            accrued_expenses,
            short_term_debt,
            deferred_revenue,
            current_portion_long_term_debt,
            _sum(
                accounts_payable.total,
                accrued_expenses.total,
                short_term_debt.total,
                deferred_revenue,
                current_portion_long_term_debt,
            ),
        )


@dataclass(frozen=True)
class LongTermDebt:
    mortgages: Decimal = ZERO
    long_term_loans: Decimal = ZERO
    bonds_payable: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> LongTermDebt:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class LongTermLiabilities:
    long_term_debt: LongTermDebt = field(default_factory=LongTermDebt)
    deferred_tax_liabilities: Decimal = ZERO
    pension_liabilities: Decimal = ZERO
    other_long_term_liabilities: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(
        cls,
        long_term_debt: LongTermDebt,
        deferred_tax_liabilities: Decimal,
        pension_liabilities: Decimal,
        other_long_term_liabilities: Decimal,
    ) -> LongTermLiabilities:
        return cls(
            long_term_debt,
            deferred_tax_liabilities,
            pension_liabilities,
            other_long_term_liabilities,
            _sum(
                long_term_debt.total,
                deferred_tax_liabilities,
                pension_liabilities,
                other_long_term_liabilities,
            ),
        )


@dataclass(frozen=True)
class Liabilities:
    current_liabilities: CurrentLiabilities = field(default_factory=CurrentLiabilities)
    long_term_liabilities: LongTermLiabilities = field(default_factory=LongTermLiabilities)
    total_liabilities: Decimal = ZERO

    @classmethod
    def of(cls, current: CurrentLiabilities, long_term: LongTermLiabilities) -> Liabilities:
        return cls(current, long_term, current.total + long_term.total)


# =========================================================================
# Equity
# =========================================================================


@dataclass(frozen=True)
class ContributedCapital:
    common_stock: Decimal = ZERO
    preferred_stock: Decimal = ZERO
    additional_paid_in_capital: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> ContributedCapital:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class RetainedEarnings:
    """ending = beginning + current period earnings - dividends paid."""

    beginning_balance: Decimal = ZERO
    current_period_earnings: Decimal = ZERO
    dividends_paid: Decimal = ZERO
    ending_balance: Decimal = ZERO

    @classmethod
    def of(cls, beginning: Decimal, earnings: Decimal, dividends: Decimal) -> RetainedEarnings:
        return cls(beginning, earnings, dividends, beginning + earnings - dividends)


@dataclass(frozen=True)
class OtherEquity:
    treasury_stock: Decimal = ZERO
    accumulated_other_comprehensive_income: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def of(cls, **buckets: Decimal) -> OtherEquity:
        return cls(**buckets, total=_sum(*buckets.values()))


@dataclass(frozen=True)
class Equity:
    contributed_capital: ContributedCapital = field(default_factory=ContributedCapital)
    retained_earnings: RetainedEarnings = field(default_factory=RetainedEarnings)
    other_equity: OtherEquity = field(default_factory=OtherEquity)
    total_equity: Decimal = ZERO

    @classmethod
    def of(
        cls,
        contributed_capital: ContributedCapital,
        retained_earnings: RetainedEarnings,
        other_equity: OtherEquity,
    ) -> Equity:
        return cls(
            contributed_capital,
            retained_earnings,
            other_equity,
            contributed_capital.total + retained_earnings.ending_balance + other_equity.total,
        )


# =========================================================================
# Ratios
# =========================================================================


@dataclass(frozen=True)
class FinancialRatios:
    """Ratios derived from the assembled sections; 0 when undefined."""

    current_ratio: Decimal = ZERO
    quick_ratio: Decimal = ZERO
    debt_to_equity: Decimal = ZERO
    return_on_assets: Decimal = ZERO
    return_on_equity: Decimal = ZERO


# =========================================================================
# Assembled statement
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetStatement:
    """An assembled, not yet persisted, balance sheet."""

    tenant_id: str
    statement_date: datetime
    period_type: str
    period_start: datetime
    assets: Assets
    liabilities: Liabilities
    equity: Equity
    ratios: FinancialRatios = field(default_factory=FinancialRatios)

    @property
    def imbalance(self) -> Decimal:
        """total_assets - (total_liabilities + total_equity)."""
        return self.assets.total_assets - (
            self.liabilities.total_liabilities + self.equity.total_equity
        )

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.imbalance) < tolerance


# =========================================================================
# Comparison
# =========================================================================


@dataclass(frozen=True)
class ComparisonLine:
    current: Decimal = ZERO
    previous: Decimal = ZERO
    change: Decimal = ZERO
    percentage_change: Decimal = ZERO


@dataclass(frozen=True)
class ComparisonResult:
    baseline_kind: str
    baseline_id: UUID
    baseline_number: str
    baseline_date: datetime
    total_assets: ComparisonLine
    total_liabilities: ComparisonLine
    total_equity: ComparisonLine
