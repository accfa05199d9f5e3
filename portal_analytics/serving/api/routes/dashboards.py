"""
Dashboard API Endpoints

Seller/supplier dashboards and buyer summaries. Every request builds its own
DashboardService over the request's database session.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal_analytics.analytics import (
    BuyerSummary,
    DashboardReport,
    DashboardService,
    FulfillmentSummary,
    Granularity,
    KpiSnapshot,
    TrendSeries,
)
from portal_analytics.config import Settings, get_settings
from portal_analytics.database import SqlCatalogSource, SqlOrderSource, get_db_dependency

router = APIRouter()
buyers_router = APIRouter()


def get_dashboard_service(
    db: AsyncSession = Depends(get_db_dependency),
    settings: Settings = Depends(get_settings),
) -> DashboardService:
    """FastAPI dependency: a service bound to this request's session"""
    return DashboardService(
        SqlCatalogSource(db),
        SqlOrderSource(db),
        settings.analytics,
    )


AsOf = Query(None, description="Evaluation instant (ISO 8601); defaults to the current time")


@router.get("/{business_id}", response_model=DashboardReport)
async def get_dashboard(
    business_id: str,
    role: Optional[str] = Query(None, description="seller or supplier; selects the low-stock threshold"),
    now: Optional[datetime] = AsOf,
    low_stock_threshold: Optional[int] = Query(None, ge=0),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardReport:
    """KPIs, trend series, order status breakdown and recent orders"""
    return await service.dashboard(business_id, role, now, low_stock_threshold)


@router.get("/{business_id}/kpis", response_model=KpiSnapshot)
async def get_kpis(
    business_id: str,
    role: Optional[str] = None,
    now: Optional[datetime] = AsOf,
    low_stock_threshold: Optional[int] = Query(None, ge=0),
    service: DashboardService = Depends(get_dashboard_service),
) -> KpiSnapshot:
    return await service.kpi_snapshot(business_id, role, now, low_stock_threshold)


@router.get("/{business_id}/trends", response_model=TrendSeries)
async def get_trends(
    business_id: str,
    granularity: Optional[Granularity] = Query(None, description="Return only this series"),
    now: Optional[datetime] = AsOf,
    service: DashboardService = Depends(get_dashboard_service),
) -> TrendSeries:
    """Zero-filled revenue series, oldest point first"""
    series = await service.trends(business_id, now)
    if granularity is None:
        return series

    selected = {
        Granularity.DAY: "daily",
        Granularity.MONTH: "monthly",
        Granularity.YEAR: "yearly",
    }[granularity]
    return TrendSeries(**{selected: getattr(series, selected)})


@router.get("/{business_id}/fulfillment", response_model=FulfillmentSummary)
async def get_fulfillment(
    business_id: str,
    now: Optional[datetime] = AsOf,
    service: DashboardService = Depends(get_dashboard_service),
) -> FulfillmentSummary:
    return await service.fulfillment(business_id, now)


@buyers_router.get("/{buyer_id}/summary", response_model=BuyerSummary)
async def get_buyer_summary(
    buyer_id: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> BuyerSummary:
    return await service.buyer_summary(buyer_id)
