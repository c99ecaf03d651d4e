"""Read access to published profit-and-loss statements."""

from datetime import UTC, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import select

from statement_kernel.models.ledger import ProfitAndLossStatus, PublishedProfitAndLoss
from statement_kernel.selectors.base import BaseSelector

_TRUSTED_STATUSES = (
    ProfitAndLossStatus.APPROVED.value,
    ProfitAndLossStatus.PUBLISHED.value,
)


def _day_start(moment: datetime) -> datetime:
    return datetime.combine(moment.astimezone(UTC).date(), time.min, tzinfo=UTC)


class ProfitAndLossSelector(BaseSelector[PublishedProfitAndLoss]):
    """Finds the approved P&L that covers a balance sheet interval."""

    def find_published(
        self,
        tenant_id: str,
        interval_start: datetime,
        interval_end: datetime,
    ) -> Decimal | None:
        """
        Net income of the approved/published P&L covering the interval.

        The interval is (interval_start, interval_end].  A P&L covers it when
        it ends on the day of interval_end and starts on the boundary day
        itself or the day after (a March P&L starts 1 March, the boundary is
        the end of February).  Returns None if no such statement exists.
        """
        start_day = _day_start(interval_start)
        end_day = _day_start(interval_end)
        stmt = (
            select(PublishedProfitAndLoss.net_income)
            .where(
                PublishedProfitAndLoss.tenant_id == tenant_id,
                PublishedProfitAndLoss.status.in_(_TRUSTED_STATUSES),
                PublishedProfitAndLoss.period_start >= start_day,
                PublishedProfitAndLoss.period_start < start_day + timedelta(days=2),
                PublishedProfitAndLoss.period_end >= end_day,
                PublishedProfitAndLoss.period_end < end_day + timedelta(days=1),
            )
            .order_by(PublishedProfitAndLoss.period_end.desc())
            .limit(1)
        )
        return self.session.scalar(stmt)
