"""
Tests for balance sheet generation (BalanceSheetService.generate).

Validates:
- The small business scenario: cash 1500 = payables 300 + equity 1200
- The accounting identity and the stored is_balanced flag
- Snapshot metadata: number, period start, status, version, audit entry
- One snapshot per tenant and period
- Request validation errors
- Tenant isolation
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from statement_kernel.exceptions import (
    DuplicatePeriodError,
    InvalidDateError,
    InvalidPeriodTypeError,
    MissingTenantError,
)
from statement_kernel.models.account import AccountType
from statement_kernel.models.statement import StatementStatus


def d(value) -> Decimal:
    return Decimal(str(value))


class TestSmallBusinessScenario:
    """Cash 1001 / payables 2001 / common stock 3101 / revenue 4001."""

    @pytest.fixture
    def snapshot(self, balance_sheet_service, small_business_chart, test_tenant_id, test_actor_id):
        return balance_sheet_service.generate(
            test_tenant_id, "2024-03-31", "monthly", requested_by=test_actor_id
        )

    def test_cash(self, snapshot):
        cash = snapshot.assets["current_assets"]["cash_and_equivalents"]
        assert d(cash["cash_on_hand"]) == Decimal("1500")
        assert d(cash["bank_accounts"]) == Decimal("0")
        assert d(cash["total"]) == Decimal("1500")

    def test_totals(self, snapshot):
        assert d(snapshot.assets["total_assets"]) == Decimal("1500")
        assert d(snapshot.liabilities["total_liabilities"]) == Decimal("300")
        assert d(snapshot.equity["total_equity"]) == Decimal("1200")

    def test_payables(self, snapshot):
        payables = snapshot.liabilities["current_liabilities"]["accounts_payable"]
        assert d(payables["trade_payables"]) == Decimal("300")

    def test_equity_breakdown(self, snapshot):
        assert d(snapshot.equity["contributed_capital"]["common_stock"]) == Decimal("1000")
        retained = snapshot.equity["retained_earnings"]
        assert d(retained["beginning_balance"]) == Decimal("0")
        assert d(retained["current_period_earnings"]) == Decimal("200")
        assert d(retained["ending_balance"]) == Decimal("200")

    def test_identity_holds(self, snapshot):
        imbalance = d(snapshot.assets["total_assets"]) - (
            d(snapshot.liabilities["total_liabilities"]) + d(snapshot.equity["total_equity"])
        )
        assert abs(imbalance) < Decimal("0.01")
        assert snapshot.is_balanced is True

    def test_metadata(self, snapshot, test_actor_id, deterministic_clock):
        assert snapshot.statement_number == "BS-M202403-001"
        assert snapshot.status == StatementStatus.DRAFT.value
        assert snapshot.version == 1
        assert snapshot.period_type == "monthly"
        assert snapshot.period_start == datetime(2024, 3, 1, tzinfo=UTC)
        assert snapshot.statement_date == datetime(2024, 3, 31, 23, 59, 59, 999999, tzinfo=UTC)
        assert snapshot.generated_by == test_actor_id
        assert snapshot.generated_at == deterministic_clock.now_utc()
        assert snapshot.degradations == []

    def test_ratios(self, snapshot):
        assert d(snapshot.ratios["current_ratio"]) == Decimal("5.0000")
        assert d(snapshot.ratios["debt_to_equity"]) == Decimal("0.2500")
        assert d(snapshot.ratios["return_on_equity"]) == Decimal("0.1667")

    def test_created_audit_entry(self, snapshot, balance_sheet_service, test_tenant_id, test_actor_id):
        trail = balance_sheet_service.audit_trail(test_tenant_id, snapshot.id)
        assert [(e.seq, e.action, e.performed_by) for e in trail] == [(1, "created", test_actor_id)]

    def test_generation_logged(self, balance_sheet_service, small_business_chart, test_tenant_id, captured_logs):
        balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        generated = [r for r in captured_logs() if r["message"] == "balance_sheet_generated"]
        assert len(generated) == 1
        assert generated[0]["tenant_id"] == test_tenant_id
        assert generated[0]["statement_number"] == "BS-M202403-001"
        assert generated[0]["is_balanced"] is True


class TestGenerationRules:
    def test_pending_transactions_ignored(
        self, balance_sheet_service, small_business_chart, post_transaction, test_tenant_id
    ):
        from statement_kernel.models.ledger import TransactionStatus

        post_transaction(
            "1001", datetime(2024, 3, 20, tzinfo=UTC), debit="999.00", status=TransactionStatus.PENDING
        )
        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        assert d(snapshot.assets["total_assets"]) == Decimal("1500")

    def test_transactions_after_cutoff_ignored(
        self, balance_sheet_service, small_business_chart, post_transaction, test_tenant_id
    ):
        post_transaction("1001", datetime(2024, 4, 1, 0, 0, 1, tzinfo=UTC), debit="999.00")
        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        assert d(snapshot.assets["total_assets"]) == Decimal("1500")

    def test_empty_chart_yields_zero_statement(self, balance_sheet_service, test_tenant_id):
        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        assert d(snapshot.assets["total_assets"]) == Decimal("0")
        assert d(snapshot.liabilities["total_liabilities"]) == Decimal("0")
        assert d(snapshot.equity["total_equity"]) == Decimal("0")
        assert snapshot.is_balanced is True

    def test_quarterly_and_yearly_numbers(self, balance_sheet_service, small_business_chart, test_tenant_id):
        quarterly = balance_sheet_service.generate(test_tenant_id, "2024-03-31", "quarterly")
        yearly = balance_sheet_service.generate(test_tenant_id, "2024-03-31", "yearly")

        assert quarterly.statement_number == "BS-Q1-2024-001"
        assert quarterly.period_start == datetime(2024, 1, 1, tzinfo=UTC)
        assert yearly.statement_number == "BS-Y2024-001"

    def test_unbalanced_chart_flagged(
        self, balance_sheet_service, create_account, test_tenant_id, captured_logs
    ):
        create_account("1001", "Cash", AccountType.ASSET, "current_assets", "100.00")

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert snapshot.is_balanced is False
        assert any(r["message"] == "balance_sheet_out_of_balance" for r in captured_logs())


class TestUniqueness:
    def test_second_generation_for_period_rejected(
        self, balance_sheet_service, small_business_chart, test_tenant_id
    ):
        balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        with pytest.raises(DuplicatePeriodError) as exc_info:
            balance_sheet_service.generate(test_tenant_id, "2024-03-15")
        assert exc_info.value.code == "DUPLICATE_PERIOD"
        assert exc_info.value.period_type == "monthly"

    def test_same_period_other_type_allowed(self, balance_sheet_service, small_business_chart, test_tenant_id):
        balance_sheet_service.generate(test_tenant_id, "2024-03-31", "monthly")
        balance_sheet_service.generate(test_tenant_id, "2024-03-31", "quarterly")
        assert balance_sheet_service.stats(test_tenant_id).total == 2

    def test_same_period_other_tenant_allowed(self, balance_sheet_service, test_tenant_id):
        first = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        second = balance_sheet_service.generate("tenant-beta", "2024-03-31")
        assert first.statement_number == second.statement_number == "BS-M202403-001"

    def test_period_taken_between_check_and_insert(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch, captured_logs
    ):
        """The storage constraint catches a period taken after the pre-check."""
        first = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        monkeypatch.setattr(
            balance_sheet_service._snapshots, "find_by_tenant_and_period", lambda *args: None
        )

        with pytest.raises(DuplicatePeriodError) as exc_info:
            balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert exc_info.value.period_type == "monthly"
        assert balance_sheet_service.stats(test_tenant_id).total == 1
        assert balance_sheet_service.get_latest(test_tenant_id).id == first.id
        conflicts = [r for r in captured_logs() if r["message"] == "snapshot_insert_conflict"]
        assert [r["outcome"] for r in conflicts] == ["period_taken"]

    def test_number_collision_retries(
        self, session, balance_sheet_service, test_tenant_id, monkeypatch
    ):
        """A stale reservation loses to the constraint and moves to the next number."""
        balance_sheet_service.generate(test_tenant_id, "2024-02-29")
        numbering = balance_sheet_service._numbering
        monkeypatch.setattr(numbering, "reserve", lambda *args: "BS-M202402-001")

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        assert snapshot.statement_number == "BS-M202402-002"


class TestRequestValidation:
    @pytest.mark.parametrize("tenant_id", [None, "", "   "])
    def test_missing_tenant(self, balance_sheet_service, tenant_id):
        with pytest.raises(MissingTenantError):
            balance_sheet_service.generate(tenant_id, "2024-03-31")

    def test_invalid_date(self, balance_sheet_service, test_tenant_id):
        with pytest.raises(InvalidDateError):
            balance_sheet_service.generate(test_tenant_id, "31/03/2024")

    def test_invalid_period_type(self, balance_sheet_service, test_tenant_id):
        with pytest.raises(InvalidPeriodTypeError):
            balance_sheet_service.generate(test_tenant_id, "2024-03-31", "fortnightly")

    def test_nothing_persisted_on_validation_failure(self, balance_sheet_service, test_tenant_id):
        with pytest.raises(InvalidDateError):
            balance_sheet_service.generate(test_tenant_id, "")
        assert balance_sheet_service.stats(test_tenant_id).total == 0


class TestTenantIsolation:
    def test_other_tenant_ledger_invisible(
        self, balance_sheet_service, small_business_chart, create_account, post_transaction
    ):
        create_account("1001", "Cash", AccountType.ASSET, "current_assets", "7777.00", tenant_id="tenant-beta")
        post_transaction("1001", datetime(2024, 3, 2, tzinfo=UTC), debit="100.00", tenant_id="tenant-beta")

        snapshot = balance_sheet_service.generate("tenant-beta", "2024-03-31")
        assert d(snapshot.assets["total_assets"]) == Decimal("7877")

    def test_lookup_across_tenants_not_found(
        self, balance_sheet_service, small_business_chart, test_tenant_id
    ):
        from statement_kernel.exceptions import StatementNotFoundError

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        with pytest.raises(StatementNotFoundError):
            balance_sheet_service.get_by_id("tenant-beta", snapshot.id)
