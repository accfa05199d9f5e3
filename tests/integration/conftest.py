"""
Integration Test Configuration

A file-backed SQLite database per test, seeded with one seller's catalog
and a handful of orders in the portal's storage layout.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest

from portal_analytics.database import Database, Order, OrderItem, Product

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _seed_rows():
    products = [
        Product(id="obj-1", business_id="biz-1", custom_id="SKU-1", name="Widget",
                price=Decimal("100.00"), stock=5, sold_count=3),
        Product(id="obj-2", business_id="biz-1", custom_id="SKU-2", name="Gadget",
                price=Decimal("0"), stock=30, sold_count=0),
        Product(id="obj-9", business_id="biz-2", custom_id="SKU-9", name="Gizmo",
                price=Decimal("5.00"), stock=2, sold_count=50),
    ]
    orders = [
        Order(id="o-1", status="Completed", shipment_status="delivered", business_buyer_id="buyer-1",
              total_amount=Decimal("200.00"), created_at=NOW - timedelta(days=2),
              items=[OrderItem(position=0, custom_id="SKU-1", quantity=2)]),
        # Legacy line referencing the internal id, priced on the line
        Order(id="o-2", status="SHIPPED", shipment_status="In Transit", business_buyer_id="buyer-1",
              total_amount=Decimal("45.00"), created_at=NOW - timedelta(days=5),
              items=[OrderItem(position=0, product_id="obj-2", quantity=3, unit_price=Decimal("15.00"))]),
        Order(id="o-3", status="completed", refunded=True, business_buyer_id="buyer-2",
              total_amount=Decimal("100.00"), created_at=NOW - timedelta(days=1),
              items=[OrderItem(position=0, sku="SKU-1", quantity=1)]),
        # Other seller's order
        Order(id="o-4", status="COMPLETED", business_buyer_id="buyer-1",
              total_amount=Decimal("5.00"), created_at=NOW - timedelta(days=1),
              items=[OrderItem(position=0, sku="SKU-9", quantity=1)]),
        # No created_at: windowed through updated_at
        Order(id="o-5", status="PAID", business_buyer_id="buyer-2",
              total_amount=Decimal("100.00"), created_at=None, updated_at=NOW - timedelta(days=3),
              items=[OrderItem(position=0, pid="SKU-1", quantity=1)]),
        # Outside the KPI window
        Order(id="o-6", status="DELIVERED", business_buyer_id="buyer-1",
              total_amount=Decimal("100.00"), created_at=NOW - timedelta(days=400),
              items=[OrderItem(position=0, custom_id="SKU-1", quantity=1)]),
    ]
    return products, orders


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Seeded test database"""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    await db.create_all()

    products, orders = _seed_rows()
    async with db.session() as session:
        session.add_all(products)
        session.add_all(orders)

    yield db

    await db.dispose()
