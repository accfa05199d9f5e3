"""
Revenue & Fulfillment Analytics Engine
"""
from .classifier import Classification, classify, is_countable, is_countable_item
from .exceptions import AnalyticsError, DataSourceUnavailableError, SnapshotValidationError
from .fallback import estimate_from_lifetime
from .fulfillment import FulfillmentSummary, aggregate_fulfillment
from .identity import IdentityIndex, resolve
from .kpi import KpiSnapshot, LowStockRule, compose_kpis, compute_stock_metrics
from .records import CatalogEntry, LineItem, OrderRecord
from .revenue import RevenueAggregate, TimeWindow, aggregate_revenue
from .series import Granularity, TrendPoint, TrendSeries, build_series, build_trend_series
from .service import (
    BuyerSummary,
    CatalogSource,
    DashboardReport,
    DashboardService,
    OrderSource,
)

__all__ = [
    "AnalyticsError",
    "BuyerSummary",
    "CatalogEntry",
    "CatalogSource",
    "Classification",
    "DashboardReport",
    "DashboardService",
    "DataSourceUnavailableError",
    "FulfillmentSummary",
    "Granularity",
    "IdentityIndex",
    "KpiSnapshot",
    "LineItem",
    "LowStockRule",
    "OrderRecord",
    "OrderSource",
    "RevenueAggregate",
    "SnapshotValidationError",
    "TimeWindow",
    "TrendPoint",
    "TrendSeries",
    "aggregate_fulfillment",
    "aggregate_revenue",
    "build_series",
    "build_trend_series",
    "classify",
    "compose_kpis",
    "compute_stock_metrics",
    "estimate_from_lifetime",
    "is_countable",
    "is_countable_item",
    "resolve",
]
