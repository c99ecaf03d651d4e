"""
Tests for engine initialization and session_scope.

Services only flush; session_scope owns commit and rollback.
"""

import pytest
from sqlalchemy import func, select

from statement_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from statement_kernel.db.immutability import unregister_immutability_listeners
from statement_kernel.exceptions import ImmutabilityViolationError
from statement_kernel.models.account import AccountType, ChartAccount
from statement_modules.balance_sheet.service import BalanceSheetService


@pytest.fixture
def configured_engine():
    engine = init_engine_from_url("sqlite://")
    create_tables(engine)
    yield engine
    reset_engine()


def cash_account(tenant_id: str) -> ChartAccount:
    return ChartAccount(
        tenant_id=tenant_id,
        code="1001",
        name="Cash",
        account_type=AccountType.ASSET.value,
        category="current_assets",
        normal_balance="debit",
    )


class TestEngineLifecycle:
    def test_uninitialized_engine_raises(self):
        reset_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()

    def test_sqlite_url_uses_sqlite_dialect(self, configured_engine):
        assert get_engine() is configured_engine
        assert configured_engine.dialect.name == "sqlite"


class TestSessionScope:
    def test_commit_on_success(self, configured_engine, test_tenant_id, deterministic_clock):
        with session_scope() as session:
            session.add(cash_account(test_tenant_id))
            session.flush()
            snapshot = BalanceSheetService(session, clock=deterministic_clock).generate(
                test_tenant_id, "2024-03-31"
            )
            snapshot_id = snapshot.id

        with session_scope() as session:
            stored = BalanceSheetService(session).get_by_id(test_tenant_id, snapshot_id)
            assert stored.statement_number == "BS-M202403-001"

    def test_rollback_on_error(self, configured_engine, test_tenant_id):
        with pytest.raises(RuntimeError, match="abort"):
            with session_scope() as session:
                session.add(cash_account(test_tenant_id))
                session.flush()
                raise RuntimeError("abort")

        with session_scope() as session:
            assert session.scalar(select(func.count(ChartAccount.id))) == 0


class TestAuditGuard:
    def test_engine_init_attaches_audit_guard(self, test_tenant_id, deterministic_clock):
        unregister_immutability_listeners()
        init_engine_from_url("sqlite://")
        create_tables()
        session = get_session()
        try:
            session.add(cash_account(test_tenant_id))
            session.flush()
            service = BalanceSheetService(session, clock=deterministic_clock)
            snapshot = service.generate(test_tenant_id, "2024-03-31")
            (entry,) = service.audit_trail(test_tenant_id, snapshot.id)

            entry.details = "rewritten history"
            with pytest.raises(ImmutabilityViolationError):
                session.flush()
        finally:
            session.rollback()
            session.close()
            reset_engine()
