"""
Module: statement_kernel.db.types
Responsibility: Annotated type aliases and helpers for financial-grade column
    types.  Centralizes precision and rounding so every model, selector and
    calculator uses identical definitions.
Architecture position: Kernel > DB.  May be imported by every other layer.

Invariants enforced:
    - No floats.  All monetary amounts use Decimal with explicit precision.
    - round_money() is the only sanctioned rounding function; it is applied
      to derived percentages and ratios, never to balances.
    - Account codes are compared in normalized form (stripped, upper-case).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Chart of accounts code ("1001", "2120")
AccountCode = Annotated[str, String(20)]

# Short identifier strings (status, period type, role)
ShortCode = Annotated[str, String(50)]

# Human-readable names
Name = Annotated[str, String(255)]

# Long text for notes and details
LongText = Annotated[str, String(4000)]

ZERO = Decimal("0")
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a stored or serialized amount to Decimal.

    None becomes zero.  Floats go through str() so binary artifacts are not
    carried into the ledger arithmetic.

    Raises:
        ValueError: If value cannot be interpreted as a number.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the given number of decimal places."""
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def normalize_account_code(code: str) -> str:
    """Canonical form used for every account code lookup."""
    return str(code).strip().upper()
