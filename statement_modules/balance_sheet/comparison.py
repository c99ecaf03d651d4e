"""
Comparison engine -- period-over-period deltas between two snapshots.

    change             = current - previous
    percentage_change  = change / previous * 100, rounded to 2 places,
                         or 0 when previous <= 0

``change`` is exact; only the percentage is rounded.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from statement_kernel.db.types import ZERO, round_money, to_decimal
from statement_kernel.models.statement import StatementSnapshot
from statement_modules.balance_sheet.models import ComparisonLine, ComparisonResult


class BaselineKind(str, Enum):
    PREVIOUS = "previous"
    YEAR_AGO = "year_ago"


def coerce_baseline_kind(value: str | BaselineKind) -> BaselineKind:
    if isinstance(value, BaselineKind):
        return value
    try:
        return BaselineKind(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown comparison baseline {value!r}; "
            f"expected one of {[k.value for k in BaselineKind]}"
        ) from None


def compare_line(current: Decimal, previous: Decimal) -> ComparisonLine:
    change = current - previous
    if previous > 0:
        percentage = round_money(change / previous * Decimal("100"), 2)
    else:
        percentage = ZERO
    return ComparisonLine(
        current=current,
        previous=previous,
        change=change,
        percentage_change=percentage,
    )


def _totals(snapshot: StatementSnapshot) -> tuple[Decimal, Decimal, Decimal]:
    return (
        to_decimal((snapshot.assets or {}).get("total_assets")),
        to_decimal((snapshot.liabilities or {}).get("total_liabilities")),
        to_decimal((snapshot.equity or {}).get("total_equity")),
    )


def compare_snapshots(
    current: StatementSnapshot,
    baseline: StatementSnapshot,
    baseline_kind: BaselineKind,
) -> ComparisonResult:
    cur_assets, cur_liabilities, cur_equity = _totals(current)
    base_assets, base_liabilities, base_equity = _totals(baseline)
    return ComparisonResult(
        baseline_kind=baseline_kind.value,
        baseline_id=baseline.id,
        baseline_number=baseline.statement_number,
        baseline_date=baseline.statement_date,
        total_assets=compare_line(cur_assets, base_assets),
        total_liabilities=compare_line(cur_liabilities, base_liabilities),
        total_equity=compare_line(cur_equity, base_equity),
    )
