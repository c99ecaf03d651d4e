"""ORM models for the statement kernel."""

from statement_kernel.models.account import (
    AccountRole,
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
from statement_kernel.models.statement import (
    AuditAction,
    PeriodType,
    StatementAuditEntry,
    StatementSnapshot,
    StatementStatus,
)

__all__ = [
    "AccountRole",
    "AccountRoleMapping",
    "AccountType",
    "AuditAction",
    "ChartAccount",
    "LedgerTransaction",
    "NormalBalance",
    "OrderStatus",
    "PaymentStatus",
    "PeriodType",
    "ProfitAndLossStatus",
    "PublishedProfitAndLoss",
    "SalesOrder",
    "StatementAuditEntry",
    "StatementSnapshot",
    "StatementStatus",
    "TransactionStatus",
]
