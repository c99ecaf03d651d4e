"""
Tests for compute_ratios and the review workflow definition.
"""

from decimal import Decimal

import pytest

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
    Inventory,
    Liabilities,
    LongTermDebt,
    LongTermLiabilities,
    OtherEquity,
    RetainedEarnings,
    ShortTermDebt,
)
from statement_modules.balance_sheet.ratios import compute_ratios
from statement_modules.balance_sheet.workflows import (
    REJECTABLE_STATES,
    STATEMENT_REVIEW_WORKFLOW,
)

ZERO = Decimal("0")


def build(cash, inventory, payables, long_term, capital, earnings):
    current_assets = CurrentAssets.of(
        CashAndEquivalents.of(Decimal(cash), ZERO, ZERO),
        AccountsReceivable(),
        Inventory.of(ZERO, ZERO, Decimal(inventory)),
        ZERO,
    )
    assets = Assets.of(current_assets, FixedAssets())
    liabilities = Liabilities.of(
        CurrentLiabilities.of(
            AccountsPayable.of(Decimal(payables)), AccruedExpenses(), ShortTermDebt(), ZERO
        ),
        LongTermLiabilities.of(
            long_term_debt=LongTermDebt(),
            deferred_tax_liabilities=Decimal(long_term),
            pension_liabilities=ZERO,
            other_long_term_liabilities=ZERO,
        ),
    )
    equity = Equity.of(
        ContributedCapital.of(common_stock=Decimal(capital)),
        RetainedEarnings.of(ZERO, Decimal(earnings), ZERO),
        OtherEquity(),
    )
    return assets, liabilities, equity


class TestComputeRatios:
    def test_typical_company(self):
        ratios = compute_ratios(*build("3000", "1000", "2000", "2000", "1500", "500"))

        assert ratios.current_ratio == Decimal("2.0000")
        assert ratios.quick_ratio == Decimal("1.5000")
        assert ratios.debt_to_equity == Decimal("2.0000")
        assert ratios.return_on_assets == Decimal("0.1250")
        assert ratios.return_on_equity == Decimal("0.2500")

    def test_rounded_to_four_places(self):
        ratios = compute_ratios(*build("1000", "0", "300", "0", "1000", "0"))
        assert ratios.current_ratio == Decimal("3.3333")

    def test_no_liabilities(self):
        ratios = compute_ratios(*build("1000", "0", "0", "0", "1000", "0"))
        assert ratios.current_ratio == ZERO
        assert ratios.quick_ratio == ZERO
        assert ratios.debt_to_equity == ZERO

    def test_negative_equity(self):
        ratios = compute_ratios(*build("100", "0", "500", "0", "-400", "-50"))
        assert ratios.debt_to_equity == ZERO
        assert ratios.return_on_equity == ZERO
        assert ratios.return_on_assets == Decimal("-0.5000")

    def test_empty_statement(self):
        ratios = compute_ratios(Assets(), Liabilities(), Equity())
        assert ratios.current_ratio == ratios.return_on_assets == ZERO


class TestReviewWorkflow:
    def test_initial_state_is_draft(self):
        assert STATEMENT_REVIEW_WORKFLOW.initial_state == "draft"

    @pytest.mark.parametrize(
        "from_state, targets",
        [
            ("draft", ("review", "approved")),
            ("review", ("approved",)),
            ("approved", ("final",)),
            ("final", ()),
        ],
    )
    def test_targets(self, from_state, targets):
        assert STATEMENT_REVIEW_WORKFLOW.targets(from_state) == targets

    def test_audit_actions(self):
        approve = STATEMENT_REVIEW_WORKFLOW.transition_for("review", "approved")
        submit = STATEMENT_REVIEW_WORKFLOW.transition_for("draft", "review")

        assert approve.audit_action == "approved"
        assert submit.audit_action == "status_changed"
        assert not STATEMENT_REVIEW_WORKFLOW.is_allowed("final", "draft")

    def test_moves_are_one_way(self):
        assert all(t.to_state != "draft" for t in STATEMENT_REVIEW_WORKFLOW.transitions)
        assert REJECTABLE_STATES == ("review",)
