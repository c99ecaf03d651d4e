"""Financial ratios derived from an assembled balance sheet."""

from __future__ import annotations

from decimal import Decimal

from statement_kernel.db.types import ZERO, round_money
from statement_modules.balance_sheet.models import Assets, Equity, FinancialRatios, Liabilities

RATIO_DECIMAL_PLACES = 4


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator <= 0:
        return ZERO
    return round_money(numerator / denominator, RATIO_DECIMAL_PLACES)


def compute_ratios(assets: Assets, liabilities: Liabilities, equity: Equity) -> FinancialRatios:
    """
    Liquidity, leverage and return ratios.

    A ratio whose denominator is zero or negative is reported as 0.
    Returns use the period's earnings, not an annualized figure.
    """
    current_assets = assets.current_assets.total
    current_liabilities = liabilities.current_liabilities.total
    earnings = equity.retained_earnings.current_period_earnings
    return FinancialRatios(
        current_ratio=_ratio(current_assets, current_liabilities),
        quick_ratio=_ratio(
            current_assets - assets.current_assets.inventory.total, current_liabilities
        ),
        debt_to_equity=_ratio(liabilities.total_liabilities, equity.total_equity),
        return_on_assets=_ratio(earnings, assets.total_assets),
        return_on_equity=_ratio(earnings, equity.total_equity),
    )
