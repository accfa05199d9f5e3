"""
KPI Composer

Merges catalog stock metrics with revenue and fulfillment aggregates into
the ``KpiSnapshot`` handed to the presentation layer. Snapshots are derived
per request and never persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional, Sequence

from pydantic import BaseModel, Field, PlainSerializer
import structlog

from .fallback import estimate_from_lifetime
from .fulfillment import FulfillmentSummary
from .records import ZERO, CatalogEntry, round_money
from .revenue import ProductSales, RevenueAggregate, TimeWindow

logger = structlog.get_logger(__name__)

# Exact in Python, plain numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

SALES_SOURCE_ORDERS = "orders"
SALES_SOURCE_ESTIMATE = "lifetime_estimate"


@dataclass(frozen=True)
class LowStockRule:
    """
    Low-stock boundary configured by the caller.

    Exclusive by default (``0 < stock < threshold``); inclusive rules use
    ``0 < stock <= threshold``.
    """
    threshold: int
    inclusive: bool = False

    def is_low(self, stock: int) -> bool:
        if stock <= 0:
            return False
        return stock <= self.threshold if self.inclusive else stock < self.threshold


class StockMetrics(BaseModel):
    """Catalog-derived stock totals"""
    product_count: int = 0
    stock_count: int = 0
    in_stock: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    inventory_value: Money = ZERO


class ProductSalesSummary(BaseModel):
    """Per-product sales line of a snapshot"""
    key: str
    name: str
    category: Optional[str] = None
    image_ref: Optional[str] = None
    quantity: int
    revenue: Money

    @classmethod
    def from_sales(cls, sales: ProductSales) -> "ProductSalesSummary":
        return cls(
            key=sales.key,
            name=sales.name,
            category=sales.category,
            image_ref=sales.image_ref,
            quantity=sales.quantity,
            revenue=round_money(sales.revenue),
        )


class KpiSnapshot(BaseModel):
    """Point-in-time analytics result for one business"""
    totals: StockMetrics
    sold_quantity: int
    revenue: Money
    per_product: List[ProductSalesSummary] = Field(default_factory=list)
    sales_source: str = SALES_SOURCE_ORDERS
    orders_counted: int = 0
    low_stock_threshold: int
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    fulfillment: FulfillmentSummary = Field(default_factory=FulfillmentSummary)

    @property
    def is_estimate(self) -> bool:
        return self.sales_source == SALES_SOURCE_ESTIMATE


def compute_stock_metrics(
    catalog_entries: Sequence[CatalogEntry],
    low_stock: LowStockRule,
) -> StockMetrics:
    """Stock counts and inventory value straight from the catalog"""
    inventory_value = ZERO
    stock_count = in_stock = low = out = 0

    for entry in catalog_entries:
        stock = entry.stock_quantity
        stock_count += stock
        if stock > 0:
            in_stock += 1
        else:
            out += 1
        if low_stock.is_low(stock):
            low += 1
        inventory_value += entry.unit_price * stock

    return StockMetrics(
        product_count=len(catalog_entries),
        stock_count=stock_count,
        in_stock=in_stock,
        low_stock=low,
        out_of_stock=out,
        inventory_value=round_money(inventory_value),
    )


def compose_kpis(
    catalog_entries: Sequence[CatalogEntry],
    revenue: RevenueAggregate,
    fulfillment: Optional[FulfillmentSummary] = None,
    low_stock: LowStockRule = LowStockRule(threshold=10),
    window: Optional[TimeWindow] = None,
) -> KpiSnapshot:
    """
    Compose a KPI snapshot.

    When the aggregate holds no sales at all, the lifetime estimate replaces
    it entirely; the two sources are never mixed.
    """
    catalog_entries = list(catalog_entries)
    sales = revenue
    source = SALES_SOURCE_ESTIMATE if revenue.is_estimate else SALES_SOURCE_ORDERS

    if revenue.is_empty and not revenue.is_estimate:
        sales = estimate_from_lifetime(catalog_entries)
        source = SALES_SOURCE_ESTIMATE
        logger.info(
            "No order sales in window, using lifetime estimate",
            estimated_quantity=sales.total_quantity,
        )

    return KpiSnapshot(
        totals=compute_stock_metrics(catalog_entries, low_stock),
        sold_quantity=sales.total_quantity,
        revenue=round_money(sales.total_revenue),
        per_product=[ProductSalesSummary.from_sales(p) for p in sales.per_product],
        sales_source=source,
        orders_counted=revenue.orders_counted,
        low_stock_threshold=low_stock.threshold,
        window_start=window.start if window else None,
        window_end=window.end if window else None,
        fulfillment=fulfillment or FulfillmentSummary(),
    )
