"""Read-only query selectors over ledger, chart and statement tables."""

from statement_kernel.selectors.chart_selector import AccountFilter, AccountInfo, ChartSelector
from statement_kernel.selectors.ledger_selector import DebitCreditTotals, LedgerSelector
from statement_kernel.selectors.profit_and_loss_selector import ProfitAndLossSelector
from statement_kernel.selectors.snapshot_selector import SnapshotSelector, StatementStats

__all__ = [
    "AccountFilter",
    "AccountInfo",
    "ChartSelector",
    "DebitCreditTotals",
    "LedgerSelector",
    "ProfitAndLossSelector",
    "SnapshotSelector",
    "StatementStats",
]
