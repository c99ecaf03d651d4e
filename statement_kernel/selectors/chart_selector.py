"""
Module: statement_kernel.selectors.chart_selector
Responsibility: Read access to a tenant's chart of accounts and role map.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Inactive accounts and system accounts are never returned; the
      statement engine aggregates only what a tenant can actually post to.
    - Pattern matching is case-insensitive and done in Python after the
      SQL narrows by type/category, so behaviour is identical on every
      backend.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from statement_kernel.db.types import normalize_account_code
from statement_kernel.models.account import AccountRoleMapping, ChartAccount
from statement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountInfo:
    """Read-only view of a chart account."""

    id: UUID
    code: str
    name: str
    account_type: str
    category: str
    normal_balance: str
    opening_balance: Decimal
    allow_direct_posting: bool

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == "credit"

    @classmethod
    def from_model(cls, account: ChartAccount) -> "AccountInfo":
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            category=account.category or "",
            normal_balance=account.normal_balance,
            opening_balance=account.opening_balance or Decimal("0"),
            allow_direct_posting=account.allow_direct_posting,
        )


@dataclass(frozen=True)
class AccountFilter:
    """
    Declarative account lookup.

    All set criteria must hold.  When match_name_or_code is True the name
    and code patterns are alternatives instead of both being required.
    """

    account_type: str | None = None
    categories: tuple[str, ...] = ()
    exclude_categories: tuple[str, ...] = ()
    name_pattern: str | None = None
    exclude_name_pattern: str | None = None
    code_pattern: str | None = None
    match_name_or_code: bool = False
    require_direct_posting: bool = False

    def matches(self, account: AccountInfo) -> bool:
        if self.account_type and account.account_type != self.account_type:
            return False
        if self.categories and account.category not in self.categories:
            return False
        if account.category in self.exclude_categories:
            return False
        if self.require_direct_posting and not account.allow_direct_posting:
            return False
        if self.exclude_name_pattern and _search(self.exclude_name_pattern, account.name):
            return False

        name_ok = self.name_pattern is None or _search(self.name_pattern, account.name)
        code_ok = self.code_pattern is None or bool(re.search(self.code_pattern, account.code))
        if self.match_name_or_code and self.name_pattern and self.code_pattern:
            return name_ok or code_ok
        return name_ok and code_ok


def _search(pattern: str, text: str) -> bool:
    return re.search(pattern, text or "", re.IGNORECASE) is not None


class ChartSelector(BaseSelector[ChartAccount]):
    """Queries over chart_accounts and account_role_mappings."""

    def _visible(self, tenant_id: str):
        return select(ChartAccount).where(
            ChartAccount.tenant_id == tenant_id,
            ChartAccount.is_active.is_(True),
            ChartAccount.is_system_account.is_(False),
        )

    def find_by_code(self, tenant_id: str, code: str) -> AccountInfo | None:
        """Active, non-system account with this code, or None."""
        stmt = self._visible(tenant_id).where(
            ChartAccount.code == normalize_account_code(code)
        )
        account = self.session.scalars(stmt).first()
        return AccountInfo.from_model(account) if account is not None else None

    def find_by_pattern(self, tenant_id: str, account_filter: AccountFilter) -> list[AccountInfo]:
        """Accounts matching the filter, ordered by code."""
        stmt = self._visible(tenant_id)
        if account_filter.account_type:
            stmt = stmt.where(ChartAccount.account_type == account_filter.account_type)
        if account_filter.categories:
            stmt = stmt.where(ChartAccount.category.in_(account_filter.categories))
        stmt = stmt.order_by(ChartAccount.code)

        infos = (AccountInfo.from_model(a) for a in self.session.scalars(stmt))
        return [info for info in infos if account_filter.matches(info)]

    def role_mapping(self, tenant_id: str) -> dict[str, str]:
        """The tenant's configured role -> account code map."""
        stmt = select(AccountRoleMapping).where(AccountRoleMapping.tenant_id == tenant_id)
        return {
            row.role: normalize_account_code(row.account_code)
            for row in self.session.scalars(stmt)
        }
