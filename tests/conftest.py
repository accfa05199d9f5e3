"""
Test Suite Configuration
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, FrozenSet, List, Optional

import polars as pl
import pytest

from portal_analytics.analytics.records import CatalogEntry, LineItem, OrderRecord
from portal_analytics.analytics.statuses import OrderStatus, ShipmentStatus
from portal_analytics.config import Settings


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeCatalogSource:
    """In-memory catalog collaborator"""

    def __init__(self, catalogs: Optional[dict] = None, error: Optional[Exception] = None):
        self.catalogs = catalogs or {}
        self.error = error
        self.calls: List[str] = []

    async def fetch_catalog(self, business_id: str) -> List[CatalogEntry]:
        self.calls.append(business_id)
        if self.error:
            raise self.error
        return list(self.catalogs.get(business_id, []))


class FakeOrderSource:
    """In-memory order collaborator; filters like the SQL source does"""

    def __init__(self, orders: Optional[List[OrderRecord]] = None, error: Optional[Exception] = None):
        self.orders = orders or []
        self.error = error
        self.calls: List[tuple] = []

    async def fetch_orders(self, keys: FrozenSet[str], since: datetime) -> List[OrderRecord]:
        self.calls.append((keys, since))
        if self.error:
            raise self.error
        return [
            o for o in self.orders
            if o.effective_timestamp is not None and o.effective_timestamp >= since
        ]

    async def fetch_buyer_orders(self, buyer_id: str) -> List[OrderRecord]:
        if self.error:
            raise self.error
        return [o for o in self.orders if o.business_owner_ref == buyer_id]


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant"""
    return NOW


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def make_entry() -> Callable[..., CatalogEntry]:
    """Catalog entry factory"""
    def _make(
        primary_key: Optional[str] = "SKU-1",
        secondary_key: Optional[str] = "obj-1",
        price: str = "100",
        stock: int = 5,
        sold: int = 0,
        name: str = "Widget",
    ) -> CatalogEntry:
        return CatalogEntry(
            primary_key=primary_key,
            secondary_key=secondary_key,
            name=name,
            unit_price=Decimal(price),
            stock_quantity=stock,
            lifetime_sold_count=sold,
        )
    return _make


@pytest.fixture
def make_order() -> Callable[..., OrderRecord]:
    """Order factory; line items given as LineItem instances"""
    counter = {"n": 0}

    def _make(
        *items: LineItem,
        status: Optional[str] = "COMPLETED",
        created_at: Optional[datetime] = NOW - timedelta(days=1),
        updated_at: Optional[datetime] = None,
        shipment: str = "PENDING",
        total: str = "0",
        buyer: Optional[str] = None,
        order_id: Optional[str] = None,
        **fields,
    ) -> OrderRecord:
        counter["n"] += 1
        return OrderRecord(
            id=order_id or f"ord-{counter['n']}",
            created_at=created_at,
            updated_at=updated_at,
            status=OrderStatus.parse(status),
            raw_status=status,
            line_items=tuple(items),
            shipment_status=ShipmentStatus.parse(shipment),
            total_amount=Decimal(total),
            business_owner_ref=buyer,
            **fields,
        )
    return _make


@pytest.fixture
def sample_catalog_df() -> pl.DataFrame:
    """Catalog snapshot in the portal's export layout"""
    return pl.DataFrame({
        "business_id": ["biz-1", "biz-1", "biz-2"],
        "custom_id": ["SKU-1", "SKU-2", "SKU-9"],
        "id": ["obj-1", "obj-2", "obj-9"],
        "name": ["Widget", "Gadget", "Gizmo"],
        "price": [100.0, 20.0, 5.0],
        "stock": [5, 0, 40],
        "sold_count": [3, 0, 12],
    })


@pytest.fixture
def fake_catalog():
    """Catalog collaborator class"""
    return FakeCatalogSource


@pytest.fixture
def fake_orders():
    """Order collaborator class"""
    return FakeOrderSource
