"""
Request-scoped state for one balance sheet generation.

A GenerationContext is created at the start of ``generate()`` and dropped
when it returns.  It carries the tenant, the normalized cutoff, the role
code cache and the degradation records.  Nothing in it is shared between
tenants or between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from statement_kernel.domain.periods import PeriodType
from statement_kernel.logging_config import get_logger

logger = get_logger("modules.balance_sheet.context")


@dataclass(frozen=True)
class DegradedCalculationWarning:
    """A leaf calculation that failed and was replaced by zero."""

    component: str
    reason: str
    error_type: str
    account_code: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "component": self.component,
            "reason": self.reason,
            "error_type": self.error_type,
            "account_code": self.account_code,
        }


@dataclass
class GenerationContext:
    tenant_id: str
    cutoff: datetime
    period_type: PeriodType
    requested_by: str = "system"
    role_codes: dict[str, str] | None = None
    degradations: list[DegradedCalculationWarning] = field(default_factory=list)

    def record_degradation(
        self,
        component: str,
        exc: BaseException,
        account_code: str | None = None,
    ) -> DegradedCalculationWarning:
        warning = DegradedCalculationWarning(
            component=component,
            reason=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            account_code=account_code,
        )
        self.degradations.append(warning)
        logger.warning(
            "calculation_degraded",
            extra={
                "tenant_id": self.tenant_id,
                "component": component,
                "account_code": account_code,
                "error_type": warning.error_type,
                "reason": warning.reason,
            },
        )
        return warning
