"""
Pytest fixtures for the statement kernel test suite.

Provides:
- An in-memory SQLite database per test (fresh schema, shared connection)
- A session, a deterministic clock and the balance sheet service
- Factories for chart accounts, ledger transactions, sales orders and
  published P&L statements
- Structured log capture

Environment Variables:
- None.  Tests never touch PostgreSQL; the engine module's SQLite path
  emits explicit BEGIN so SAVEPOINT-based conflict handling behaves the
  same way it does in production.
"""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import Session, sessionmaker

from statement_kernel.db.engine import create_sqlite_engine, create_tables, drop_tables
from statement_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from statement_kernel.domain.clock import DeterministicClock
from statement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from statement_kernel.models.account import (
    AccountRoleMapping,
    AccountType,
    ChartAccount,
    NormalBalance,
)
from statement_kernel.models.ledger import (
    LedgerTransaction,
    OrderStatus,
    PaymentStatus,
    ProfitAndLossStatus,
    PublishedProfitAndLoss,
    SalesOrder,
    TransactionStatus,
)
from statement_modules.balance_sheet.config import BalanceSheetConfig
from statement_modules.balance_sheet.service import BalanceSheetService

TEST_TENANT_ID = "tenant-alpha"
OTHER_TENANT_ID = "tenant-beta"
TEST_ACTOR_ID = "accountant-1"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture statement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, balance_sheet_service):
            balance_sheet_service.generate(...)
            logs = captured_logs()
            assert any(r["message"] == "balance_sheet_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("statement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def engine():
    """Fresh in-memory database with all tables."""
    engine = create_sqlite_engine()
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Session:
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 4, 2, 9, 0, 0, tzinfo=UTC))


@pytest.fixture
def test_tenant_id() -> str:
    return TEST_TENANT_ID


@pytest.fixture
def test_actor_id() -> str:
    return TEST_ACTOR_ID


@pytest.fixture
def balance_sheet_config() -> BalanceSheetConfig:
    return BalanceSheetConfig.with_defaults()


@pytest.fixture
def balance_sheet_service(session, deterministic_clock, balance_sheet_config):
    return BalanceSheetService(
        session=session,
        clock=deterministic_clock,
        config=balance_sheet_config,
    )


# =============================================================================
# Factories
# =============================================================================


_DEBIT_NORMAL_TYPES = {AccountType.ASSET.value, AccountType.EXPENSE.value}


@pytest.fixture
def create_account(session):
    """Factory for chart accounts; normal balance follows the account type."""

    def _create(
        code: str,
        name: str,
        account_type: AccountType | str,
        category: str = "",
        opening_balance: Decimal | str = Decimal("0"),
        normal_balance: NormalBalance | str | None = None,
        tenant_id: str = TEST_TENANT_ID,
        **kwargs,
    ) -> ChartAccount:
        account_type = AccountType(account_type).value
        if normal_balance is None:
            normal_balance = (
                NormalBalance.DEBIT if account_type in _DEBIT_NORMAL_TYPES else NormalBalance.CREDIT
            )
        account = ChartAccount(
            tenant_id=tenant_id,
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            normal_balance=NormalBalance(normal_balance).value,
            opening_balance=Decimal(str(opening_balance)),
            **kwargs,
        )
        session.add(account)
        session.flush()
        return account

    return _create


@pytest.fixture
def post_transaction(session):
    """Factory for ledger transactions."""

    def _post(
        account_code: str,
        occurred_at: datetime,
        debit: Decimal | str = Decimal("0"),
        credit: Decimal | str = Decimal("0"),
        status: TransactionStatus = TransactionStatus.COMPLETED,
        tenant_id: str = TEST_TENANT_ID,
    ) -> LedgerTransaction:
        txn = LedgerTransaction(
            tenant_id=tenant_id,
            account_code=account_code,
            debit_amount=Decimal(str(debit)),
            credit_amount=Decimal(str(credit)),
            occurred_at=occurred_at,
            status=status.value,
        )
        session.add(txn)
        session.flush()
        return txn

    return _post


@pytest.fixture
def map_role(session):
    def _map(role: str, account_code: str, tenant_id: str = TEST_TENANT_ID) -> AccountRoleMapping:
        mapping = AccountRoleMapping(tenant_id=tenant_id, role=role, account_code=account_code)
        session.add(mapping)
        session.flush()
        return mapping

    return _map


@pytest.fixture
def create_sales_order(session):
    def _create(
        order_number: str,
        total: Decimal | str,
        ordered_at: datetime,
        status: OrderStatus = OrderStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.COMPLETED,
        tenant_id: str = TEST_TENANT_ID,
    ) -> SalesOrder:
        order = SalesOrder(
            tenant_id=tenant_id,
            order_number=order_number,
            total=Decimal(str(total)),
            status=status.value,
            payment_status=payment_status.value,
            ordered_at=ordered_at,
        )
        session.add(order)
        session.flush()
        return order

    return _create


@pytest.fixture
def publish_profit_and_loss(session):
    def _publish(
        period_start: datetime,
        period_end: datetime,
        net_income: Decimal | str,
        status: ProfitAndLossStatus = ProfitAndLossStatus.PUBLISHED,
        tenant_id: str = TEST_TENANT_ID,
    ) -> PublishedProfitAndLoss:
        statement = PublishedProfitAndLoss(
            tenant_id=tenant_id,
            period_start=period_start,
            period_end=period_end,
            net_income=Decimal(str(net_income)),
            status=status.value,
        )
        session.add(statement)
        session.flush()
        return statement

    return _publish


# =============================================================================
# Standard scenario
# =============================================================================


def march(day: int, hour: int = 12) -> datetime:
    return datetime(2024, 3, day, hour, 0, 0, tzinfo=UTC)


@pytest.fixture
def small_business_chart(create_account, post_transaction):
    """
    Cash 1001 (opening 1000, +500 in March), accounts payable 2001 (+300),
    common stock 3101 (opening 1000), sales revenue 4001 (+200 in March).

    As of 2024-03-31: assets 1500 = liabilities 300 + equity 1200.
    """
    accounts = {
        "cash": create_account("1001", "Cash", AccountType.ASSET, "current_assets", "1000.00"),
        "payables": create_account(
            "2001", "Accounts Payable", AccountType.LIABILITY, "current_liabilities"
        ),
        "stock": create_account(
            "3101", "Common Stock", AccountType.EQUITY, "owner_equity", "1000.00"
        ),
        "revenue": create_account("4001", "Sales Revenue", AccountType.REVENUE, "sales_revenue"),
    }
    post_transaction("1001", march(15), debit="500.00")
    post_transaction("2001", march(15), credit="300.00")
    post_transaction("4001", march(15), credit="200.00")
    return accounts
