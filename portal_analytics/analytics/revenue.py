"""
Revenue Aggregator

Walks a business's orders and attributes line revenue and quantity to
catalog entries, producing:

- total sold quantity and revenue
- a per-product breakdown (sorted by quantity sold, descending)
- day / month / year trend buckets of attributed revenue and order counts

All money is accumulated as exact ``Decimal``; rounding to cents happens
only where results leave the engine (see ``kpi`` and ``series``).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import structlog

from .classifier import is_countable, is_countable_item
from .identity import IdentityIndex
from .records import ZERO, CatalogEntry, LineItem, OrderRecord, to_timestamp

logger = structlog.get_logger(__name__)


# =============================================================================
# TIME WINDOWS AND BUCKET KEYS
# =============================================================================

def day_key(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d")


def month_key(ts: datetime) -> str:
    return ts.strftime("%Y-%m")


def year_key(ts: datetime) -> str:
    return ts.strftime("%Y")


def shift_months(ts: datetime, months: int) -> datetime:
    """First instant of the month ``months`` away from ts's month"""
    index = ts.year * 12 + (ts.month - 1) + months
    return ts.replace(
        year=index // 12, month=index % 12 + 1, day=1,
        hour=0, minute=0, second=0, microsecond=0,
    )


@dataclass(frozen=True)
class TimeWindow:
    """Closed interval [start, end] of aware UTC timestamps"""
    start: datetime
    end: datetime

    def contains(self, ts: Optional[datetime]) -> bool:
        return ts is not None and self.start <= ts <= self.end

    @classmethod
    def trailing_days(cls, days: int, now: datetime) -> "TimeWindow":
        """The ``days`` days ending at now"""
        end = to_timestamp(now)
        return cls(start=end - timedelta(days=days), end=end)

    @classmethod
    def trailing_months(cls, months: int, now: datetime) -> "TimeWindow":
        """Calendar months: the current month plus ``months - 1`` before it"""
        end = to_timestamp(now)
        return cls(start=shift_months(end, -(months - 1)), end=end)

    @classmethod
    def trailing_years(cls, years: int, now: datetime) -> "TimeWindow":
        """Calendar years: the current year plus ``years - 1`` before it"""
        end = to_timestamp(now)
        start = end.replace(
            year=end.year - (years - 1), month=1, day=1,
            hour=0, minute=0, second=0, microsecond=0,
        )
        return cls(start=start, end=end)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ProductSales:
    """Per-product accumulator; metadata is taken from the first sighting"""
    key: str
    name: str
    category: Optional[str]
    image_ref: Optional[str]
    quantity: int = 0
    revenue: Decimal = ZERO

    @classmethod
    def for_entry(cls, key: str, entry: CatalogEntry) -> "ProductSales":
        return cls(key=key, name=entry.name, category=entry.category, image_ref=entry.image_ref)


@dataclass
class TrendBucket:
    """Attributed revenue and order count for one time bucket"""
    sales: Decimal = ZERO
    orders: int = 0

    def add(self, sales: Decimal) -> None:
        self.sales += sales
        self.orders += 1


@dataclass
class RevenueAggregate:
    """Output of a revenue aggregation run (or of the fallback estimator)"""
    total_quantity: int = 0
    total_revenue: Decimal = ZERO
    per_product: List[ProductSales] = field(default_factory=list)
    by_day: Dict[str, TrendBucket] = field(default_factory=dict)
    by_month: Dict[str, TrendBucket] = field(default_factory=dict)
    by_year: Dict[str, TrendBucket] = field(default_factory=dict)
    orders_counted: int = 0
    is_estimate: bool = False

    @property
    def is_empty(self) -> bool:
        return self.total_quantity == 0 and self.total_revenue == ZERO


def sort_by_quantity(products: Iterable[ProductSales]) -> List[ProductSales]:
    """Descending by quantity; ties keep insertion order"""
    return sorted(products, key=lambda p: p.quantity, reverse=True)


# =============================================================================
# AGGREGATION
# =============================================================================

def resolve_unit_price(entry: CatalogEntry, item: LineItem) -> Optional[Decimal]:
    """
    Catalog price first, then the price snapshotted on the line.

    None means no price is known at all for the line.
    """
    if entry.unit_price > ZERO:
        return entry.unit_price
    return item.unit_price


def aggregate_revenue(
    orders: Iterable[OrderRecord],
    index: IdentityIndex,
    window: Optional[TimeWindow] = None,
    month_window: Optional[TimeWindow] = None,
) -> RevenueAggregate:
    """
    Aggregate attributed revenue for one business.

    Args:
        orders: Orders fetched for the business (may include other sellers' lines)
        index: Identity index of the business's catalog
        window: Orders outside this window are ignored (None = all time)
        month_window: Only orders inside it feed month buckets (None = no limit)

    Returns:
        RevenueAggregate with unrounded Decimal sums
    """
    result = RevenueAggregate()
    products: Dict[str, ProductSales] = {}
    orders_seen = 0
    unmatched_lines = 0

    for order in orders:
        orders_seen += 1
        if not is_countable(order):
            continue
        if window is not None and not window.contains(order.effective_timestamp):
            continue

        order_revenue = ZERO
        counted_lines = 0
        priced_lines = 0

        for item in order.line_items:
            match = index.match(item)
            if match is None:
                unmatched_lines += 1
                continue
            if not is_countable_item(item):
                continue

            price = resolve_unit_price(match.entry, item)
            if price is not None:
                priced_lines += 1
            line_revenue = item.quantity * (price or ZERO)

            product = products.get(match.product_key)
            if product is None:
                product = ProductSales.for_entry(match.product_key, match.entry)
                products[match.product_key] = product
            product.quantity += item.quantity
            product.revenue += line_revenue

            result.total_quantity += item.quantity
            result.total_revenue += line_revenue
            order_revenue += line_revenue
            counted_lines += 1

        if counted_lines == 0:
            continue
        result.orders_counted += 1

        # Order-level fallback: an order wholly owned by this business with no
        # price anywhere on its lines trends at its captured total.
        bucket_revenue = order_revenue
        if priced_lines == 0 and counted_lines == len(order.line_items):
            bucket_revenue = order.total_amount

        created = order.created_at
        if created is None:
            continue
        result.by_day.setdefault(day_key(created), TrendBucket()).add(bucket_revenue)
        if month_window is None or month_window.contains(created):
            result.by_month.setdefault(month_key(created), TrendBucket()).add(bucket_revenue)
        result.by_year.setdefault(year_key(created), TrendBucket()).add(bucket_revenue)

    result.per_product = sort_by_quantity(products.values())

    logger.debug(
        "Revenue aggregated",
        orders_seen=orders_seen,
        orders_counted=result.orders_counted,
        unmatched_lines=unmatched_lines,
        total_quantity=result.total_quantity,
    )
    return result
