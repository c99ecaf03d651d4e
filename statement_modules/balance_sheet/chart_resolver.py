"""
Chart resolver -- semantic role and pattern lookups against a tenant's chart.

Roles ("cash", "accounts_payable", ...) resolve through the tenant's
AccountRoleMapping first and the configured fallback codes second.  The
merged map is loaded once per generation and cached on the context.
Lookups never raise for absence: a missing account is None or [].
"""

from __future__ import annotations

from statement_kernel.models.account import AccountRole
from statement_kernel.selectors.chart_selector import AccountFilter, AccountInfo, ChartSelector
from statement_modules.balance_sheet.config import BalanceSheetConfig
from statement_modules.balance_sheet.context import GenerationContext


class ChartResolver:
    def __init__(
        self,
        chart: ChartSelector,
        context: GenerationContext,
        config: BalanceSheetConfig,
    ):
        self._chart = chart
        self._context = context
        self._config = config

    def _role_codes(self) -> dict[str, str]:
        if self._context.role_codes is None:
            self._context.role_codes = {
                **self._config.default_role_codes,
                **self._chart.role_mapping(self._context.tenant_id),
            }
        return self._context.role_codes

    def role_code(self, role: AccountRole | str) -> str | None:
        key = role.value if isinstance(role, AccountRole) else str(role)
        return self._role_codes().get(key)

    def resolve_role(self, role: AccountRole | str) -> AccountInfo | None:
        code = self.role_code(role)
        if code is None:
            return None
        return self._chart.find_by_code(self._context.tenant_id, code)

    def find(self, rule: str | AccountFilter) -> list[AccountInfo]:
        """Accounts matching a named filter from config, or an explicit filter."""
        account_filter = self._config.account_filter(rule) if isinstance(rule, str) else rule
        return self._chart.find_by_pattern(self._context.tenant_id, account_filter)

    def first(self, rule: str | AccountFilter) -> AccountInfo | None:
        matches = self.find(rule)
        return matches[0] if matches else None
