"""
Tests for partial failure handling during generation.

A failing leaf calculation is replaced by zero and recorded on the
snapshot; a failing top-level section aborts generation and leaves
nothing behind.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from statement_kernel.exceptions import AggregationError
from statement_kernel.selectors.ledger_selector import LedgerSelector
from statement_kernel.selectors.profit_and_loss_selector import ProfitAndLossSelector
from statement_modules.balance_sheet.assemblers import StatementAssembler
from statement_modules.balance_sheet.retained_earnings import RetainedEarningsResolver


def d(value) -> Decimal:
    return Decimal(str(value))


def failing(message: str, exc_type: type[Exception] = RuntimeError):
    def _raise(*args, **kwargs):
        raise exc_type(message)

    return _raise


class TestLeafDegradation:
    def test_failed_leaf_recorded_and_zeroed(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        monkeypatch.setattr(StatementAssembler, "accounts_payable", failing("payables feed down"))

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        payables = snapshot.liabilities["current_liabilities"]["accounts_payable"]
        assert d(payables["total"]) == Decimal("0")
        assert d(snapshot.liabilities["total_liabilities"]) == Decimal("0")
        assert snapshot.is_balanced is False
        assert snapshot.degradations == [
            {
                "component": "accounts_payable",
                "reason": "payables feed down",
                "error_type": "RuntimeError",
                "account_code": None,
            }
        ]

    def test_other_leaves_unaffected(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        monkeypatch.setattr(StatementAssembler, "inventory", failing("boom"))

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert d(snapshot.assets["total_assets"]) == Decimal("1500")
        assert snapshot.is_balanced is True
        assert [w["component"] for w in snapshot.degradations] == ["inventory"]

    def test_failed_account_query_names_the_account(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        original = LedgerSelector.sum_debits_credits

        def flaky(self, tenant_id, account_code, cutoff, start_after=None):
            if account_code == "2001":
                raise OperationalError("SELECT sum(...)", {}, Exception("lock timeout"))
            return original(self, tenant_id, account_code, cutoff, start_after)

        monkeypatch.setattr(LedgerSelector, "sum_debits_credits", flaky)

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert d(snapshot.assets["total_assets"]) == Decimal("1500")
        assert d(snapshot.liabilities["total_liabilities"]) == Decimal("0")
        warning = snapshot.degradations[0]
        assert warning["component"] == "account_balance"
        assert warning["account_code"] == "2001"
        assert warning["error_type"] == "OperationalError"

    def test_earnings_failure_degrades_to_zero(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        monkeypatch.setattr(LedgerSelector, "net_income_between", failing("P&L query failed"))

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        retained = snapshot.equity["retained_earnings"]
        assert d(retained["current_period_earnings"]) == Decimal("0")
        assert [w["component"] for w in snapshot.degradations] == ["current_period_earnings"]

    def test_published_statement_lookup_failure_falls_back_to_ledger(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        def unavailable(*args, **kwargs):
            raise OperationalError("SELECT ...", {}, Exception("p&l table unavailable"))

        monkeypatch.setattr(ProfitAndLossSelector, "find_published", unavailable)

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        retained = snapshot.equity["retained_earnings"]
        assert d(retained["current_period_earnings"]) == Decimal("200")
        assert snapshot.is_balanced is True
        (warning,) = snapshot.degradations
        assert warning["component"] == "published_profit_and_loss"
        assert warning["error_type"] == "OperationalError"

    def test_degradation_logged(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch, captured_logs
    ):
        monkeypatch.setattr(StatementAssembler, "prepaid_expenses", failing("boom"))

        balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        logs = captured_logs()
        degraded = [r for r in logs if r["message"] == "calculation_degraded"]
        assert degraded[0]["component"] == "prepaid_expenses"
        assert degraded[0]["level"] == "WARNING"
        generated = [r for r in logs if r["message"] == "balance_sheet_generated"]
        assert generated[0]["degradation_count"] == 1

    def test_degradations_do_not_leak_between_generations(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        with monkeypatch.context() as patch:
            patch.setattr(StatementAssembler, "inventory", failing("boom"))
            first = balance_sheet_service.generate(test_tenant_id, "2024-02-29")

        second = balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert len(first.degradations) == 1
        assert second.degradations == []


class TestSectionFailure:
    def test_top_level_failure_aborts_generation(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch, captured_logs
    ):
        monkeypatch.setattr(
            RetainedEarningsResolver, "beginning_balance", failing("snapshot table unreadable")
        )

        with pytest.raises(AggregationError) as exc_info:
            balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        assert exc_info.value.section == "equity"
        assert "snapshot table unreadable" in exc_info.value.reason
        assert balance_sheet_service.stats(test_tenant_id).total == 0
        assert any(r["message"] == "section_assembly_failed" for r in captured_logs())

    def test_period_still_free_after_failure(
        self, balance_sheet_service, small_business_chart, test_tenant_id, monkeypatch
    ):
        with monkeypatch.context() as patch:
            patch.setattr(RetainedEarningsResolver, "beginning_balance", failing("boom"))
            with pytest.raises(AggregationError):
                balance_sheet_service.generate(test_tenant_id, "2024-03-31")

        snapshot = balance_sheet_service.generate(test_tenant_id, "2024-03-31")
        assert snapshot.statement_number == "BS-M202403-001"
