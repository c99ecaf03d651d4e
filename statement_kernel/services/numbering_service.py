"""
StatementNumberingService -- human-readable statement identifiers.

Responsibility:
    Proposes the next free statement number for a tenant and period:

        monthly    BS-M202403-001
        quarterly  BS-Q1-2024-001
        yearly     BS-Y2024-001

Architecture position:
    Kernel > Services.  Reads through SnapshotSelector; writes nothing.

Invariants enforced:
    - Numbers are unique per tenant.  The proposal scans existing numbers,
      takes the highest suffix, and probes upward while a candidate is
      taken.  The UNIQUE(tenant_id, statement_number) constraint is the
      final arbiter; on a lost race the caller asks for next_after().
    - The search is bounded by max_probe.

Failure modes:
    - NumberAllocationError when max_probe candidates are all taken.
"""

import re
from datetime import datetime

from sqlalchemy.orm import Session

from statement_kernel.domain.periods import PeriodType, statement_number_prefix
from statement_kernel.exceptions import NumberAllocationError
from statement_kernel.logging_config import get_logger
from statement_kernel.selectors.snapshot_selector import SnapshotSelector

logger = get_logger("services.numbering")

DEFAULT_MAX_PROBE = 1000

_SUFFIX = re.compile(r"-(\d+)$")


def format_number(prefix: str, seq: int) -> str:
    return f"{prefix}-{seq:03d}"


def split_number(number: str) -> tuple[str, int] | None:
    """Split 'BS-M202403-007' into ('BS-M202403', 7); None if malformed."""
    match = _SUFFIX.search(number)
    if match is None:
        return None
    return number[: match.start()], int(match.group(1))


class StatementNumberingService:
    """
    Allocates statement numbers.

    Contract:
        reserve() returns a number that was free when it was checked.  It
        does not lock anything; uniqueness under concurrency comes from the
        storage constraint plus retry via next_after().
    """

    def __init__(self, session: Session, max_probe: int = DEFAULT_MAX_PROBE):
        self.session = session
        self.max_probe = max_probe
        self._snapshots = SnapshotSelector(session)

    def reserve(
        self,
        tenant_id: str,
        period_type: PeriodType | str,
        statement_date: datetime,
    ) -> str:
        prefix = statement_number_prefix(period_type, statement_date)

        highest = 0
        for existing in self._snapshots.numbers_with_prefix(tenant_id, prefix):
            parts = split_number(existing)
            if parts is not None and parts[0] == prefix:
                highest = max(highest, parts[1])

        number = self._probe(tenant_id, prefix, highest + 1)
        logger.debug(
            "statement_number_reserved",
            extra={"tenant_id": tenant_id, "prefix": prefix, "statement_number": number},
        )
        return number

    def next_after(self, tenant_id: str, number: str) -> str:
        """Next free number after one that lost a uniqueness race."""
        parts = split_number(number)
        if parts is None:
            raise ValueError(f"Malformed statement number: {number!r}")
        prefix, seq = parts
        return self._probe(tenant_id, prefix, seq + 1)

    def _probe(self, tenant_id: str, prefix: str, start: int) -> str:
        for offset in range(self.max_probe):
            candidate = format_number(prefix, start + offset)
            if not self._snapshots.number_exists(tenant_id, candidate):
                return candidate
        logger.error(
            "statement_number_exhausted",
            extra={"tenant_id": tenant_id, "prefix": prefix, "attempts": self.max_probe},
        )
        raise NumberAllocationError(prefix, self.max_probe)
