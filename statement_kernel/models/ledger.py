"""
Module: statement_kernel.models.ledger
Responsibility: Ledger transaction rows, sales orders (deferred revenue
    source) and published profit-and-loss statements (earnings source).
    These are the read-side collaborators of the balance sheet engine; how
    rows get here is outside this package.
Architecture position: Kernel > Models.  Imports only from db/.

Invariants enforced:
    - debit_amount >= 0 and credit_amount >= 0 (CHECK constraints).
    - Only status == "completed" rows contribute to balances.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from statement_kernel.db.base import Base, TenantScoped
from statement_kernel.db.types import AccountCode, LongText, Money, ShortCode


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    VOIDED = "voided"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


class ProfitAndLossStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"


class LedgerTransaction(TenantScoped, Base):
    """One dated posting against a single account."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        CheckConstraint("debit_amount >= 0", name="chk_ledger_debit_non_negative"),
        CheckConstraint("credit_amount >= 0", name="chk_ledger_credit_non_negative"),
        Index(
            "idx_ledger_tenant_account_date",
            "tenant_id",
            "account_code",
            "occurred_at",
        ),
    )

    account_code: Mapped[AccountCode] = mapped_column(nullable=False)
    debit_amount: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    credit_amount: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    reference: Mapped[ShortCode | None] = mapped_column(nullable=True)
    description: Mapped[LongText | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction {self.account_code} "
            f"D{self.debit_amount} C{self.credit_amount} {self.status}>"
        )


class SalesOrder(TenantScoped, Base):
    """Customer order; paid but undelivered orders are deferred revenue."""

    __tablename__ = "sales_orders"

    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_sales_order_tenant_number"),
    )

    order_number: Mapped[ShortCode] = mapped_column(nullable=False)
    total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    ordered_at: Mapped[datetime] = mapped_column(nullable=False)


class PublishedProfitAndLoss(TenantScoped, Base):
    """A profit-and-loss statement produced by the income statement side."""

    __tablename__ = "published_profit_and_loss"

    __table_args__ = (
        Index("idx_pnl_tenant_period", "tenant_id", "period_start", "period_end"),
    )

    period_start: Mapped[datetime] = mapped_column(nullable=False)
    period_end: Mapped[datetime] = mapped_column(nullable=False)
    net_income: Mapped[Money] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProfitAndLossStatus.DRAFT.value
    )
