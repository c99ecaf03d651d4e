"""
Calendar period arithmetic for statements.

Responsibility:
    Pure functions that turn a requested cutoff into the instants the rest
    of the engine works with: the normalized cutoff itself, the start of
    the calendar period that contains it, the start of the earnings
    interval (one period back) and the statement number prefix.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Every returned datetime is timezone-aware UTC.
    - A date-only cutoff means "end of that day" (23:59:59.999999 UTC) so
      every transaction of the day is included.
    - Month arithmetic clamps the day to the end of the target month
      (31 Mar minus one month is 29 Feb in a leap year).  The earnings
      boundary of a month-end cutoff is itself a month end.
"""

from calendar import monthrange
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum

from statement_kernel.exceptions import InvalidDateError, InvalidPeriodTypeError


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


_MONTHS_PER_PERIOD = {
    PeriodType.MONTHLY: 1,
    PeriodType.QUARTERLY: 3,
    PeriodType.YEARLY: 12,
}


def coerce_period_type(value: str | PeriodType) -> PeriodType:
    """Return the PeriodType for value or raise InvalidPeriodTypeError."""
    if isinstance(value, PeriodType):
        return value
    try:
        return PeriodType(str(value).strip().lower())
    except ValueError:
        raise InvalidPeriodTypeError(str(value)) from None


def parse_cutoff(value: str | date | datetime) -> datetime:
    """
    Normalize a requested statement date to an aware UTC instant.

    Accepts a datetime (naive values are taken as UTC), a date, or an ISO
    8601 string of either form.

    Raises:
        InvalidDateError: If value is empty or cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, date):
        return end_of_day(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(str(value), "statement date is required")

    text = value.strip()
    if len(text) == 10:
        try:
            return end_of_day(date.fromisoformat(text))
        except ValueError as exc:
            raise InvalidDateError(value, str(exc)) from exc
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidDateError(value, str(exc)) from exc
    return parse_cutoff(parsed)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=UTC)


def period_start(cutoff: datetime, period_type: PeriodType) -> datetime:
    """First instant of the calendar month, quarter or year containing cutoff."""
    period_type = coerce_period_type(period_type)
    if period_type is PeriodType.MONTHLY:
        month = cutoff.month
    elif period_type is PeriodType.QUARTERLY:
        month = 3 * ((cutoff.month - 1) // 3) + 1
    else:
        month = 1
    return datetime(cutoff.year, month, 1, tzinfo=UTC)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move moment by a whole number of months, clamping the day."""
    index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def previous_period_boundary(cutoff: datetime, period_type: PeriodType) -> datetime:
    """
    cutoff shifted back one period (1, 3 or 12 calendar months).

    A cutoff on the last day of a month maps to the last day of the target
    month, so consecutive month-end statements share one boundary.
    """
    shifted = shift_months(cutoff, -_MONTHS_PER_PERIOD[coerce_period_type(period_type)])
    if cutoff.day == monthrange(cutoff.year, cutoff.month)[1]:
        shifted = shifted.replace(day=monthrange(shifted.year, shifted.month)[1])
    return shifted


def year_ago_window(cutoff: datetime) -> tuple[datetime, datetime]:
    """Half-open window [cutoff - 1 year, cutoff - 1 year + 1 day)."""
    start = shift_months(cutoff, -12)
    return start, start + timedelta(days=1)


def quarter_of(moment: datetime) -> int:
    return (moment.month - 1) // 3 + 1


def statement_number_prefix(period_type: PeriodType, statement_date: datetime) -> str:
    """
    Prefix shared by all statement numbers of a period.

    monthly   -> BS-M{YYYY}{MM}
    quarterly -> BS-Q{q}-{YYYY}
    yearly    -> BS-Y{YYYY}
    """
    period_type = coerce_period_type(period_type)
    year = statement_date.year
    if period_type is PeriodType.MONTHLY:
        return f"BS-M{year}{statement_date.month:02d}"
    if period_type is PeriodType.QUARTERLY:
        return f"BS-Q{quarter_of(statement_date)}-{year}"
    return f"BS-Y{year}"


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def parse_range_start(value: str | date | datetime) -> datetime:
    """Like parse_cutoff, except that a bare date means the start of that day."""
    moment = parse_cutoff(value)
    if isinstance(value, datetime):
        return moment
    if isinstance(value, date) or len(value.strip()) == 10:
        return start_of_day(moment.date())
    return moment
