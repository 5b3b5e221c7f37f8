"""Daily, weekly and monthly bucketing of completed appointments."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Union

from homecare_metrics.db.schemas import TrendPoint, TrendSeries

DateLike = Union[str, date, datetime]


@dataclass(frozen=True)
class TrendSample:
    """One fact to bucket: the day it happened, its count and its revenue."""
    occurred_on: date
    count: int = 1
    revenue: float = 0.0


def calendar_date(value: DateLike) -> date:
    """
    Calendar date of an ISO-8601 string, date or datetime.

    The date is taken as the timestamp encodes it; no timezone conversion
    is applied.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def daily_key(day: date) -> date:
    return day


def weekly_key(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


def monthly_key(day: date) -> date:
    return day.replace(day=1)


def bucket_series(samples: Iterable[TrendSample], key: Callable[[date], date]) -> List[TrendPoint]:
    """Group samples by ``key``, sum count and revenue, sort ascending by period."""
    buckets: Dict[date, List[float]] = {}
    for sample in samples:
        period = key(sample.occurred_on)
        totals = buckets.setdefault(period, [0, 0.0])
        totals[0] += sample.count
        totals[1] += sample.revenue

    return [
        TrendPoint(period_key=period, count=int(count), revenue=round(revenue, 2))
        for period, (count, revenue) in sorted(buckets.items())
    ]


def bucket_trends(samples: Iterable[TrendSample]) -> TrendSeries:
    """Build the three granularities independently from the same samples."""
    samples = list(samples)
    return TrendSeries(
        daily=bucket_series(samples, daily_key),
        weekly=bucket_series(samples, weekly_key),
        monthly=bucket_series(samples, monthly_key),
    )
