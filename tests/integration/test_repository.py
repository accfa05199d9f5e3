"""
Integration Tests - SQL Data Sources
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from portal_analytics.analytics import DashboardService
from portal_analytics.analytics.statuses import OrderStatus, ShipmentStatus
from portal_analytics.database import SqlCatalogSource, SqlOrderSource

pytestmark = pytest.mark.integration


class TestSqlCatalogSource:
    """Tests for catalog queries"""

    async def test_fetch_catalog(self, database):
        async with database.session() as session:
            entries = await SqlCatalogSource(session).fetch_catalog("biz-1")

        assert {e.primary_key for e in entries} == {"SKU-1", "SKU-2"}
        widget = next(e for e in entries if e.primary_key == "SKU-1")
        assert widget.secondary_key == "obj-1"
        assert widget.unit_price == Decimal("100.00")
        assert widget.lifetime_sold_count == 3

    async def test_unknown_business(self, database):
        async with database.session() as session:
            assert await SqlCatalogSource(session).fetch_catalog("nobody") == []


class TestSqlOrderSource:
    """Tests for order queries"""

    async def test_fetch_by_any_identifier(self, database, now):
        async with database.session() as session:
            orders = await SqlOrderSource(session).fetch_orders(
                frozenset({"SKU-1", "obj-1", "SKU-2", "obj-2"}), now - timedelta(days=30)
            )

        assert {o.id for o in orders} == {"o-1", "o-2", "o-3", "o-5"}

    async def test_records_parsed(self, database, now):
        async with database.session() as session:
            orders = await SqlOrderSource(session).fetch_orders(
                frozenset({"obj-2"}), now - timedelta(days=30)
            )

        (order,) = orders
        assert order.status is OrderStatus.SHIPPED
        assert order.shipment_status is ShipmentStatus.IN_TRANSIT
        assert order.created_at.tzinfo is not None
        assert order.line_items[0].unit_price == Decimal("15.00")

    async def test_empty_keys(self, database, now):
        async with database.session() as session:
            assert await SqlOrderSource(session).fetch_orders(frozenset(), now) == []

    async def test_buyer_orders(self, database):
        async with database.session() as session:
            orders = await SqlOrderSource(session).fetch_buyer_orders("buyer-1")

        assert {o.id for o in orders} == {"o-1", "o-2", "o-4", "o-6"}


class TestDashboardOverDatabase:
    """End-to-end service runs against the database"""

    async def test_kpi_snapshot(self, database, now):
        async with database.session() as session:
            service = DashboardService(SqlCatalogSource(session), SqlOrderSource(session))
            snapshot = await service.kpi_snapshot("biz-1", role="seller", now=now)

        # o-1: 2 x 100, o-2: 3 x 15 (line price), o-5: 1 x 100 via updated_at
        assert snapshot.sold_quantity == 6
        assert snapshot.revenue == Decimal("345.00")
        assert snapshot.orders_counted == 3
        assert snapshot.fulfillment.delivered == 1
        assert snapshot.fulfillment.in_transit == 1
        assert snapshot.fulfillment.pending == 1

    async def test_missing_created_at_not_in_trends(self, database, now):
        async with database.session() as session:
            service = DashboardService(SqlCatalogSource(session), SqlOrderSource(session))
            series = await service.trends("biz-1", now=now)

        assert sum(p.orders for p in series.daily) == 2
        assert sum(p.orders for p in series.yearly) == 3
