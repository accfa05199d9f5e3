"""
Dashboard Service

Orchestrates one dashboard computation: a single bulk fetch from the
injected data sources, then pure in-memory aggregation.

    service = DashboardService(catalog_source, order_source, settings.analytics)
    report = await service.dashboard("biz-42", role="seller")

Sources are passed in explicitly; the service holds no module-level state,
so independent requests never share anything mutable.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple
import time

from pydantic import BaseModel, Field
import structlog

from portal_analytics.config import AnalyticsSettings
from .classifier import Classification, classify
from .exceptions import AnalyticsError, DataSourceUnavailableError
from .fulfillment import FulfillmentSummary, aggregate_fulfillment
from .identity import IdentityIndex, resolve
from .kpi import KpiSnapshot, LowStockRule, Money, compose_kpis
from .records import ZERO, CatalogEntry, OrderRecord, round_money, to_timestamp
from .revenue import TimeWindow, aggregate_revenue
from .series import TrendSeries, build_trend_series
from .statuses import OrderStatus

logger = structlog.get_logger(__name__)


class CatalogSource(Protocol):
    """Persistence collaborator: a business's catalog"""

    async def fetch_catalog(self, business_id: str) -> List[CatalogEntry]:
        ...


class OrderSource(Protocol):
    """Persistence collaborator: orders"""

    async def fetch_orders(self, keys: FrozenSet[str], since: datetime) -> List[OrderRecord]:
        """Orders with any line identifier in keys, created at or after since"""
        ...

    async def fetch_buyer_orders(self, buyer_id: str) -> List[OrderRecord]:
        """Orders placed by a buyer business"""
        ...


class OrderPreview(BaseModel):
    """Recent-orders preview line"""
    id: str
    status: Optional[str] = None
    total_amount: Money = ZERO
    created_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: OrderRecord) -> "OrderPreview":
        return cls(
            id=order.id,
            status=order.raw_status,
            total_amount=round_money(order.total_amount),
            created_at=order.created_at,
        )


class DashboardReport(BaseModel):
    """
    Seller/supplier dashboard payload.

    The order breakdown (orders_total, orders_by_status, recent_orders)
    covers orders at or after orders_since, the start of the longest
    configured window (the yearly trend, 5 years by default), not all time.
    """
    business_id: str
    role: Optional[str] = None
    as_of: datetime
    kpis: KpiSnapshot
    trends: TrendSeries
    orders_since: datetime
    orders_total: int = 0
    orders_by_status: Dict[str, int] = Field(default_factory=dict)
    recent_orders: List[OrderPreview] = Field(default_factory=list)


class BuyerSummary(BaseModel):
    """Buyer dashboard payload"""
    buyer_id: str
    total_orders: int = 0
    completed_orders: int = 0
    pending_orders: int = 0
    excluded_orders: int = 0
    total_spent: Money = ZERO
    recent_orders: List[OrderPreview] = Field(default_factory=list)


_PENDING_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CREATED, OrderStatus.APPROVED})


def _newest_first(orders: Sequence[OrderRecord], limit: int) -> List[OrderRecord]:
    """Most recent orders; orders without a timestamp sort last"""
    floor = datetime.min.replace(tzinfo=timezone.utc)
    ranked = sorted(orders, key=lambda o: o.created_at or floor, reverse=True)
    return ranked[:limit]


class DashboardService:
    """
    Computes KPI snapshots, trend series and fulfillment summaries.

    Args:
        catalog_source: Catalog collaborator
        order_source: Order collaborator
        settings: Window sizes and low-stock thresholds
    """

    def __init__(
        self,
        catalog_source: CatalogSource,
        order_source: OrderSource,
        settings: Optional[AnalyticsSettings] = None,
    ):
        self.catalog_source = catalog_source
        self.order_source = order_source
        self.settings = settings or AnalyticsSettings()

    # ------------------------------------------------------------------
    # Windows and rules
    # ------------------------------------------------------------------

    def low_stock_rule(self, role: Optional[str] = None, threshold: Optional[int] = None) -> LowStockRule:
        return LowStockRule(
            threshold=threshold if threshold is not None else self.settings.low_stock_threshold(role),
            inclusive=self.settings.low_stock_inclusive,
        )

    def kpi_window(self, now: datetime) -> TimeWindow:
        return TimeWindow.trailing_days(self.settings.kpi_window_days, now)

    def trend_windows(self, now: datetime) -> Tuple[TimeWindow, TimeWindow]:
        """(overall trend window, month-bucket window)"""
        years = TimeWindow.trailing_years(self.settings.trend_years, now)
        months = TimeWindow.trailing_months(self.settings.trend_months, now)
        days = TimeWindow.trailing_days(self.settings.trend_days, now)
        start = min(years.start, months.start, days.start)
        return TimeWindow(start=start, end=years.end), months

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    async def _load(
        self,
        business_id: str,
        since: datetime,
    ) -> Tuple[List[CatalogEntry], IdentityIndex, List[OrderRecord]]:
        """One bulk fetch of catalog and orders"""
        started = time.perf_counter()

        try:
            catalog = list(await self.catalog_source.fetch_catalog(business_id))
        except AnalyticsError:
            raise
        except Exception as e:
            logger.error("Catalog fetch failed", business_id=business_id, error=str(e))
            raise DataSourceUnavailableError("catalog", business_id, e) from e

        index = resolve(catalog)
        orders: List[OrderRecord] = []
        if index.keys:
            try:
                orders = list(await self.order_source.fetch_orders(index.keys, since))
            except AnalyticsError:
                raise
            except Exception as e:
                logger.error("Order fetch failed", business_id=business_id, error=str(e))
                raise DataSourceUnavailableError("orders", business_id, e) from e

        logger.info(
            "Analytics data loaded",
            business_id=business_id,
            products=len(catalog),
            identity_keys=len(index),
            orders=len(orders),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return catalog, index, orders

    @staticmethod
    def _resolve_now(now: Optional[datetime]) -> datetime:
        return to_timestamp(now) if now is not None else datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def kpi_snapshot(
        self,
        business_id: str,
        role: Optional[str] = None,
        now: Optional[datetime] = None,
        low_stock_threshold: Optional[int] = None,
    ) -> KpiSnapshot:
        """KPI snapshot for the trailing KPI window"""
        now = self._resolve_now(now)
        window = self.kpi_window(now)
        catalog, index, orders = await self._load(business_id, window.start)
        return self._compose(catalog, index, orders, window, role, low_stock_threshold)

    async def trends(self, business_id: str, now: Optional[datetime] = None) -> TrendSeries:
        """Daily, monthly and yearly revenue series"""
        now = self._resolve_now(now)
        trend_window, month_window = self.trend_windows(now)
        _, index, orders = await self._load(business_id, trend_window.start)
        return self._trends(index, orders, trend_window, month_window, now)

    async def fulfillment(self, business_id: str, now: Optional[datetime] = None) -> FulfillmentSummary:
        """Shipment-status counts for the trailing KPI window"""
        now = self._resolve_now(now)
        window = self.kpi_window(now)
        _, index, orders = await self._load(business_id, window.start)
        return aggregate_fulfillment(orders, index, window)

    async def dashboard(
        self,
        business_id: str,
        role: Optional[str] = None,
        now: Optional[datetime] = None,
        low_stock_threshold: Optional[int] = None,
    ) -> DashboardReport:
        """Full seller/supplier dashboard from a single bulk fetch"""
        now = self._resolve_now(now)
        kpi_window = self.kpi_window(now)
        trend_window, month_window = self.trend_windows(now)
        since = min(kpi_window.start, trend_window.start)

        catalog, index, orders = await self._load(business_id, since)

        kpis = self._compose(catalog, index, orders, kpi_window, role, low_stock_threshold)
        trends = self._trends(index, orders, trend_window, month_window, now)

        related = [order for order in orders if index.references(order)]
        by_status = Counter(
            order.status.value if order.status else OrderStatus.UNKNOWN.value
            for order in related
        )

        report = DashboardReport(
            business_id=business_id,
            role=role,
            as_of=now,
            kpis=kpis,
            trends=trends,
            orders_since=since,
            orders_total=len(related),
            orders_by_status=dict(sorted(by_status.items())),
            recent_orders=[
                OrderPreview.from_order(o)
                for o in _newest_first(related, self.settings.recent_orders_limit)
            ],
        )

        logger.info(
            "Dashboard computed",
            business_id=business_id,
            role=role,
            sold_quantity=kpis.sold_quantity,
            revenue=str(kpis.revenue),
            sales_source=kpis.sales_source,
        )
        return report

    async def buyer_summary(self, buyer_id: str) -> BuyerSummary:
        """Order counts and spend for a buyer business"""
        try:
            orders = list(await self.order_source.fetch_buyer_orders(buyer_id))
        except AnalyticsError:
            raise
        except Exception as e:
            logger.error("Buyer order fetch failed", buyer_id=buyer_id, error=str(e))
            raise DataSourceUnavailableError("orders", buyer_id, e) from e

        spent = ZERO
        completed = pending = excluded = 0
        for order in orders:
            classification = classify(order)
            if classification is Classification.COUNTABLE:
                spent += order.total_amount
            elif classification in (Classification.CANCELLED, Classification.REFUNDED):
                excluded += 1
            if order.status is OrderStatus.COMPLETED:
                completed += 1
            elif order.status in _PENDING_STATES:
                pending += 1

        return BuyerSummary(
            buyer_id=buyer_id,
            total_orders=len(orders),
            completed_orders=completed,
            pending_orders=pending,
            excluded_orders=excluded,
            total_spent=round_money(spent),
            recent_orders=[
                OrderPreview.from_order(o)
                for o in _newest_first(orders, self.settings.recent_orders_limit)
            ],
        )

    # ------------------------------------------------------------------
    # Pure composition
    # ------------------------------------------------------------------

    def _compose(
        self,
        catalog: List[CatalogEntry],
        index: IdentityIndex,
        orders: List[OrderRecord],
        window: TimeWindow,
        role: Optional[str],
        low_stock_threshold: Optional[int],
    ) -> KpiSnapshot:
        revenue = aggregate_revenue(orders, index, window)
        fulfillment = aggregate_fulfillment(orders, index, window)
        return compose_kpis(
            catalog,
            revenue,
            fulfillment,
            low_stock=self.low_stock_rule(role, low_stock_threshold),
            window=window,
        )

    def _trends(
        self,
        index: IdentityIndex,
        orders: List[OrderRecord],
        trend_window: TimeWindow,
        month_window: TimeWindow,
        now: datetime,
    ) -> TrendSeries:
        aggregate = aggregate_revenue(orders, index, trend_window, month_window)
        return build_trend_series(
            aggregate,
            now,
            days=self.settings.trend_days,
            months=self.settings.trend_months,
            years=self.settings.trend_years,
        )
