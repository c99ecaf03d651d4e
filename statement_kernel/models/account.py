"""
Module: statement_kernel.models.account
Responsibility: Chart of accounts rows and the per-tenant role mapping that
    tells the statement engine which account plays "cash", "bank",
    "accounts_receivable" and so on.
Architecture position: Kernel > Models.  Imports only from db/.

Invariants enforced:
    - (tenant_id, code) is unique.
    - (tenant_id, role) is unique in the role mapping.
    - Accounts carry no running balance.  Only opening_balance is stored;
      everything else is derived from ledger_transactions.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from statement_kernel.db.base import Base, TenantScoped
from statement_kernel.db.types import AccountCode, Money, Name, ShortCode


class AccountType(str, Enum):
    """Fundamental account types."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance naturally increases."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountRole(str, Enum):
    """Semantic roles resolved through the tenant's configuration map."""

    CASH = "cash"
    BANK = "bank"
    ACCOUNTS_RECEIVABLE = "accounts_receivable"
    INVENTORY = "inventory"
    ACCOUNTS_PAYABLE = "accounts_payable"
    SALES_TAX_PAYABLE = "sales_tax_payable"


class ChartAccount(TenantScoped, Base):
    """
    One account in a tenant's chart of accounts.

    Inactive and system accounts exist in the table but are invisible to
    balance sheet aggregation (see ChartSelector).
    """

    __tablename__ = "chart_accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_chart_account_tenant_code"),
        Index("idx_chart_account_tenant_type", "tenant_id", "account_type"),
        Index("idx_chart_account_tenant_category", "tenant_id", "category"),
    )

    code: Mapped[AccountCode] = mapped_column(nullable=False)
    name: Mapped[Name] = mapped_column(nullable=False)
    account_type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[ShortCode] = mapped_column(nullable=False, default="")
    normal_balance: Mapped[str] = mapped_column(String(10), nullable=False)
    opening_balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_direct_posting: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_system_account: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT.value

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.CREDIT.value

    def __repr__(self) -> str:
        return f"<ChartAccount {self.tenant_id}:{self.code} {self.name}>"


class AccountRoleMapping(TenantScoped, Base):
    """Tenant configuration: semantic role -> account code."""

    __tablename__ = "account_role_mappings"

    __table_args__ = (
        UniqueConstraint("tenant_id", "role", name="uq_account_role_tenant_role"),
    )

    role: Mapped[ShortCode] = mapped_column(nullable=False)
    account_code: Mapped[AccountCode] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AccountRoleMapping {self.tenant_id}:{self.role}->{self.account_code}>"
