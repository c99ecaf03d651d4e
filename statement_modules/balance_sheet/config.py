"""
Balance Sheet Configuration Schema.

Defines the fallback account codes for semantic roles, the account
discovery filters, and the ordered classification tables that sort
accounts into statement lines.  Everything here is data: a tenant with an
unusual chart overrides it from a dict or a YAML file instead of code.

Classification tables are evaluated first-match-wins.  A rule matches when
any of its criteria (name pattern, code pattern, code range) matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml

from statement_kernel.logging_config import get_logger
from statement_kernel.models.account import AccountRole, AccountType
from statement_kernel.selectors.chart_selector import AccountFilter
from statement_modules.balance_sheet.models import (
    AccruedExpenses,
    ContributedCapital,
    IntangibleAssets,
    LongTermDebt,
    OtherEquity,
    PropertyPlantEquipment,
    ShortTermDebt,
)

logger = get_logger("modules.balance_sheet.config")


@dataclass(frozen=True)
class ClassificationRule:
    """One row of a classification table."""

    bucket: str
    name_pattern: str | None = None
    code_pattern: str | None = None
    code_range: tuple[int, int] | None = None

    def matches(self, name: str, code: str) -> bool:
        if self.name_pattern and re.search(self.name_pattern, name or "", re.IGNORECASE):
            return True
        if self.code_pattern and re.search(self.code_pattern, code or ""):
            return True
        if self.code_range and code and code.isdigit():
            low, high = self.code_range
            return low <= int(code) <= high
        return False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClassificationRule:
        code_range = data.get("code_range")
        return cls(
            bucket=data["bucket"],
            name_pattern=data.get("name_pattern"),
            code_pattern=data.get("code_pattern"),
            code_range=tuple(code_range) if code_range else None,
        )


@dataclass(frozen=True)
class ClassificationTable:
    """Ordered rules plus the bucket used when none match."""

    default: str
    rules: tuple[ClassificationRule, ...] = ()

    def classify(self, name: str, code: str = "") -> str:
        for rule in self.rules:
            if rule.matches(name, code):
                return rule.bucket
        return self.default

    @property
    def buckets(self) -> tuple[str, ...]:
        seen = [rule.bucket for rule in self.rules] + [self.default]
        return tuple(dict.fromkeys(seen))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClassificationTable:
        return cls(
            default=data["default"],
            rules=tuple(ClassificationRule.from_dict(r) for r in data.get("rules", ())),
        )


def _rules(*rows: tuple[str, str]) -> tuple[ClassificationRule, ...]:
    return tuple(ClassificationRule(bucket=b, name_pattern=p) for b, p in rows)


DEFAULT_ROLE_CODES: dict[str, str] = {
    AccountRole.CASH.value: "1001",
    AccountRole.BANK.value: "1002",
    AccountRole.ACCOUNTS_RECEIVABLE.value: "1201",
    AccountRole.INVENTORY.value: "1301",
    AccountRole.ACCOUNTS_PAYABLE.value: "2001",
    AccountRole.SALES_TAX_PAYABLE.value: "2120",
}

_ASSET = AccountType.ASSET.value
_LIABILITY = AccountType.LIABILITY.value
_EQUITY = AccountType.EQUITY.value

_INTANGIBLE_NAMES = r"goodwill|patent|trademark|intangible|software.*asset|licen[cs]"
_INVESTMENT_NAMES = r"investment|securities"

DEFAULT_ACCOUNT_FILTERS: dict[str, AccountFilter] = {
    "cash_on_hand": AccountFilter(
        account_type=_ASSET,
        categories=("current_assets",),
        name_pattern=r"cash.*hand|petty.*cash",
    ),
    "petty_cash": AccountFilter(
        account_type=_ASSET,
        name_pattern=r"petty.*cash",
    ),
    "raw_materials": AccountFilter(
        categories=("inventory",),
        name_pattern=r"raw.*material",
    ),
    "work_in_progress": AccountFilter(
        categories=("inventory",),
        name_pattern=r"work.*progress|\bwip\b",
    ),
    "prepaid_expenses": AccountFilter(
        categories=("prepaid_expenses",),
    ),
    "prepaid_by_name": AccountFilter(
        account_type=_ASSET,
        exclude_categories=("prepaid_expenses",),
        name_pattern=r"prepaid",
    ),
    "fixed_assets": AccountFilter(
        categories=("fixed_assets",),
        exclude_name_pattern=r"accumulated.*depreciation|depreciation.*accumulated",
    ),
    "accumulated_depreciation": AccountFilter(
        account_type=_ASSET,
        name_pattern=r"accumulated.*depreciation|depreciation.*accumulated",
    ),
    "intangibles": AccountFilter(
        categories=("other_assets",),
        name_pattern=_INTANGIBLE_NAMES,
    ),
    "investments": AccountFilter(
        account_type=_ASSET,
        name_pattern=_INVESTMENT_NAMES,
    ),
    "other_assets": AccountFilter(
        categories=("other_assets",),
        exclude_name_pattern=f"{_INTANGIBLE_NAMES}|{_INVESTMENT_NAMES}",
    ),
    "accrued_expenses": AccountFilter(
        categories=("accrued_expenses",),
    ),
    "short_term_debt": AccountFilter(
        categories=("current_liabilities",),
        name_pattern=r"credit.*line|line.*credit|short.*term.*(loan|debt)|credit.*card",
        code_pattern=r"^21[3-9]\d$",
        match_name_or_code=True,
    ),
    "long_term_debt": AccountFilter(
        categories=("long_term_liabilities",),
        exclude_name_pattern=r"deferred.*tax|tax.*deferred|pension|retirement",
        name_pattern=r"mortgage|loan|debt|bond|note.*payable",
    ),
    "deferred_tax": AccountFilter(
        categories=("long_term_liabilities",),
        name_pattern=r"deferred.*tax|tax.*deferred",
    ),
    "pension": AccountFilter(
        account_type=_LIABILITY,
        name_pattern=r"pension|retirement|benefit.*plan",
    ),
    "other_long_term": AccountFilter(
        categories=("long_term_liabilities",),
        exclude_name_pattern=(
            r"mortgage|loan|debt|bond|note.*payable|deferred.*tax|tax.*deferred|pension|retirement"
        ),
    ),
    "contributed_capital": AccountFilter(
        account_type=_EQUITY,
        categories=("owner_equity",),
        exclude_name_pattern=r"dividend",
    ),
    "other_equity": AccountFilter(
        account_type=_EQUITY,
        exclude_categories=("owner_equity", "retained_earnings"),
        exclude_name_pattern=r"dividend",
    ),
    "dividends": AccountFilter(
        account_type=_EQUITY,
        name_pattern=r"dividend",
        require_direct_posting=True,
    ),
}

DEFAULT_CLASSIFICATIONS: dict[str, ClassificationTable] = {
    "fixed_assets": ClassificationTable(
        default="equipment",
        rules=_rules(
            ("land", r"\bland\b"),
            ("buildings", r"building|property"),
            ("vehicles", r"vehicle|\bcar\b|truck"),
            ("furniture_and_fixtures", r"furniture|fixture"),
            ("computer_equipment", r"computer|software|\bit\b"),
            ("equipment", r"equipment|machinery"),
        ),
    ),
    "intangibles": ClassificationTable(
        default="software",
        rules=_rules(
            ("goodwill", r"goodwill"),
            ("patents", r"patent"),
            ("trademarks", r"trademark|brand"),
            ("software", r"software|licen[cs]"),
        ),
    ),
    "accrued_expenses": ClassificationTable(
        default="other_accrued",
        rules=_rules(
            ("salaries_payable", r"salar|wage|payroll"),
            ("utilities_payable", r"utilit"),
            ("rent_payable", r"\brent"),
            ("taxes_payable", r"tax"),
            ("interest_payable", r"interest"),
        ),
    ),
    "short_term_debt": ClassificationTable(
        default="short_term_loans",
        rules=_rules(
            ("credit_lines", r"credit.*line|line.*credit"),
            ("credit_card_debt", r"credit.*card"),
            ("short_term_loans", r"loan|debt"),
        ),
    ),
    "long_term_debt": ClassificationTable(
        default="long_term_loans",
        rules=_rules(
            ("mortgages", r"mortgage"),
            ("bonds_payable", r"bond"),
            ("long_term_loans", r"loan|debt|note"),
        ),
    ),
    "contributed_capital": ClassificationTable(
        default="common_stock",
        rules=(
            ClassificationRule("common_stock", name_pattern=r"common", code_range=(3101, 3102)),
            ClassificationRule("preferred_stock", name_pattern=r"preferred", code_range=(3103, 3104)),
            ClassificationRule(
                "additional_paid_in_capital",
                name_pattern=r"paid.?in|additional|capital",
                code_range=(3105, 3199),
            ),
        ),
    ),
    "other_equity": ClassificationTable(
        default="accumulated_other_comprehensive_income",
        rules=_rules(
            ("treasury_stock", r"treasury"),
            ("accumulated_other_comprehensive_income", r"comprehensive"),
        ),
    ),
}


# Statement line each classification table fills; buckets must be its fields
TABLE_MODELS: dict[str, type] = {
    "fixed_assets": PropertyPlantEquipment,
    "intangibles": IntangibleAssets,
    "accrued_expenses": AccruedExpenses,
    "short_term_debt": ShortTermDebt,
    "long_term_debt": LongTermDebt,
    "contributed_capital": ContributedCapital,
    "other_equity": OtherEquity,
}


@dataclass
class BalanceSheetConfig:
    """
    Configuration schema for the balance sheet module.

    Controls role fallbacks, account discovery, classification and the
    numeric policies (doubtful accounts rate, balance tolerance, retry
    bounds).
    """

    default_role_codes: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ROLE_CODES),
    )
    account_filters: dict[str, AccountFilter] = field(
        default_factory=lambda: dict(DEFAULT_ACCOUNT_FILTERS),
    )
    classifications: dict[str, ClassificationTable] = field(
        default_factory=lambda: dict(DEFAULT_CLASSIFICATIONS),
    )

    # Allowance for doubtful accounts as a share of trade receivables
    doubtful_accounts_rate: Decimal = Decimal("0.03")

    # |assets - (liabilities + equity)| below this is balanced
    balance_tolerance: Decimal = Decimal("0.01")

    # The sales tax account must carry a matching name to be trusted
    sales_tax_name_pattern: str = r"sales.*tax.*payable"

    # Numbering
    max_number_retries: int = 5
    max_number_probe: int = 1000

    def __post_init__(self):
        self.doubtful_accounts_rate = Decimal(str(self.doubtful_accounts_rate))
        self.balance_tolerance = Decimal(str(self.balance_tolerance))
        if not Decimal("0") <= self.doubtful_accounts_rate < Decimal("1"):
            raise ValueError("doubtful_accounts_rate must be in [0, 1)")
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")
        if self.max_number_retries < 1:
            raise ValueError("max_number_retries must be at least 1")
        if self.max_number_probe < 1:
            raise ValueError("max_number_probe must be at least 1")
        missing = set(DEFAULT_CLASSIFICATIONS) - set(self.classifications)
        if missing:
            raise ValueError(f"classification tables missing: {sorted(missing)}")
        missing = set(DEFAULT_ACCOUNT_FILTERS) - set(self.account_filters)
        if missing:
            raise ValueError(f"account filters missing: {sorted(missing)}")
        for name, model in TABLE_MODELS.items():
            allowed = {f.name for f in fields(model)} - {"total"}
            unknown = set(self.classifications[name].buckets) - allowed
            if unknown:
                raise ValueError(
                    f"classification table {name!r} has unknown buckets: {sorted(unknown)}"
                )

    def table(self, name: str) -> ClassificationTable:
        return self.classifications[name]

    def account_filter(self, name: str) -> AccountFilter:
        return self.account_filters[name]

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("balance_sheet_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Create config from a dictionary.

        Role codes, filters and tables are merged over the defaults, so an
        override only names what it changes.
        """
        data = dict(data)
        if "default_role_codes" in data:
            data["default_role_codes"] = {
                **DEFAULT_ROLE_CODES,
                **{str(k): str(v) for k, v in data["default_role_codes"].items()},
            }
        if "classifications" in data:
            data["classifications"] = {
                **DEFAULT_CLASSIFICATIONS,
                **{
                    name: t if isinstance(t, ClassificationTable) else ClassificationTable.from_dict(t)
                    for name, t in data["classifications"].items()
                },
            }
        if "account_filters" in data:
            data["account_filters"] = {
                **DEFAULT_ACCOUNT_FILTERS,
                **{
                    name: f if isinstance(f, AccountFilter) else _filter_from_dict(name, f)
                    for name, f in data["account_filters"].items()
                },
            }
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown balance sheet config keys: {sorted(unknown)}")
        logger.info(
            "balance_sheet_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Load a config override from a YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        logger.info("balance_sheet_config_loading_from_yaml", extra={"path": str(path)})
        return cls.from_dict(data)


def _filter_from_dict(name: str, data: dict[str, Any]) -> AccountFilter:
    base = DEFAULT_ACCOUNT_FILTERS.get(name, AccountFilter())
    values = dict(data)
    for key in ("categories", "exclude_categories"):
        if key in values:
            values[key] = tuple(values[key])
    return replace(base, **values)
