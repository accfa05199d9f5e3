"""
Trend Series

Turns sparse revenue buckets into contiguous, zero-filled chart series
(oldest point first).
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Mapping

from pydantic import BaseModel, Field

from .kpi import Money
from .records import ZERO, round_money, to_timestamp
from .revenue import RevenueAggregate, TrendBucket, day_key, month_key, shift_months


class Granularity(str, Enum):
    """Trend bucket sizes"""
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class TrendPoint(BaseModel):
    """One chart point"""
    label: str
    sales: Money = ZERO
    orders: int = 0


class TrendSeries(BaseModel):
    """Daily, monthly and yearly series for one business"""
    daily: List[TrendPoint] = Field(default_factory=list)
    monthly: List[TrendPoint] = Field(default_factory=list)
    yearly: List[TrendPoint] = Field(default_factory=list)


def period_labels(granularity: Granularity, now: datetime, periods: int) -> List[str]:
    """Labels of the ``periods`` buckets ending with the one containing now"""
    now = to_timestamp(now)
    offsets = range(periods - 1, -1, -1)
    if granularity is Granularity.DAY:
        return [day_key(now - timedelta(days=i)) for i in offsets]
    if granularity is Granularity.MONTH:
        return [month_key(shift_months(now, -i)) for i in offsets]
    return [str(now.year - i) for i in offsets]


def build_series(
    buckets: Mapping[str, TrendBucket],
    granularity: Granularity,
    now: datetime,
    periods: int,
) -> List[TrendPoint]:
    """Zero-filled series; buckets outside the labelled range are dropped"""
    points = []
    for label in period_labels(granularity, now, periods):
        bucket = buckets.get(label)
        if bucket is None:
            points.append(TrendPoint(label=label))
        else:
            points.append(
                TrendPoint(label=label, sales=round_money(bucket.sales), orders=bucket.orders)
            )
    return points


def build_trend_series(
    aggregate: RevenueAggregate,
    now: datetime,
    days: int = 30,
    months: int = 12,
    years: int = 5,
) -> TrendSeries:
    return TrendSeries(
        daily=build_series(aggregate.by_day, Granularity.DAY, now, days),
        monthly=build_series(aggregate.by_month, Granularity.MONTH, now, months),
        yearly=build_series(aggregate.by_year, Granularity.YEAR, now, years),
    )
