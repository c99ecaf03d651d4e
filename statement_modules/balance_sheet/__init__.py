"""
Balance Sheet Module (``statement_modules.balance_sheet``).

Responsibility
--------------
Produces point-in-time balance sheets for one tenant from its ledger and
chart of accounts, persists them as numbered snapshots, and carries them
through review, approval and finalization.

Architecture position
---------------------
**Modules layer**.  Reads through kernel selectors, writes through the
kernel's SnapshotStore.  Section arithmetic lives in frozen dataclasses
(``models.py``); JSON conversion in pure functions (``statements.py``).

Invariants enforced
-------------------
* total_assets = total_liabilities + total_equity within the configured
  tolerance, recorded as ``is_balanced`` on every snapshot.
* One snapshot per tenant, period type and period start.
* Retained earnings chain: a statement's beginning balance is the previous
  statement's ending balance.

Failure modes
-------------
* A failing leaf calculation degrades to zero and is recorded; a failing
  top-level section aborts generation with AggregationError.

Audit relevance
---------------
Every lifecycle change appends one entry to the snapshot's audit trail.
Approved and final snapshots cannot be edited or deleted.
"""

from statement_modules.balance_sheet.comparison import BaselineKind
from statement_modules.balance_sheet.config import (
    BalanceSheetConfig,
    ClassificationRule,
    ClassificationTable,
)
from statement_modules.balance_sheet.context import (
    DegradedCalculationWarning,
    GenerationContext,
)
from statement_modules.balance_sheet.models import (
    Assets,
    BalanceSheetStatement,
    ComparisonLine,
    ComparisonResult,
    Equity,
    FinancialRatios,
    Liabilities,
    RetainedEarnings,
)
from statement_modules.balance_sheet.service import BalanceSheetService
from statement_modules.balance_sheet.workflows import STATEMENT_REVIEW_WORKFLOW

__all__ = [
    "Assets",
    "BalanceSheetConfig",
    "BalanceSheetService",
    "BalanceSheetStatement",
    "BaselineKind",
    "ClassificationRule",
    "ClassificationTable",
    "ComparisonLine",
    "ComparisonResult",
    "DegradedCalculationWarning",
    "Equity",
    "FinancialRatios",
    "GenerationContext",
    "Liabilities",
    "RetainedEarnings",
    "STATEMENT_REVIEW_WORKFLOW",
]
