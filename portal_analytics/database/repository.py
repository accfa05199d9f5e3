"""
SQL Data Sources

Catalog and order queries feeding the analytics engine. Rows are converted
to analytics records here, at the ingestion boundary.
"""

from datetime import datetime
from typing import FrozenSet, List

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal_analytics.analytics.records import (
    ZERO,
    CatalogEntry,
    LineItem,
    OrderRecord,
    to_decimal,
    to_optional_decimal,
    to_timestamp,
)
from portal_analytics.analytics.statuses import OrderStatus, PaymentStatus, ShipmentStatus
from .models import Order, OrderItem, Product

logger = structlog.get_logger(__name__)


def product_to_entry(product: Product) -> CatalogEntry:
    return CatalogEntry(
        primary_key=product.custom_id,
        secondary_key=product.id,
        name=product.name or "",
        unit_price=max(to_decimal(product.price), ZERO),
        stock_quantity=max(product.stock or 0, 0),
        lifetime_sold_count=max(product.sold_count or 0, 0),
        category=product.category,
        image_ref=product.image_url,
    )


def item_to_line(item: OrderItem) -> LineItem:
    return LineItem(
        product_id=item.product_id,
        custom_id=item.custom_id,
        pid=item.pid,
        sku=item.sku,
        quantity=max(item.quantity or 1, 1),
        unit_price=to_optional_decimal(item.unit_price),
        refund_flag=bool(item.refunded),
        refund_status=OrderStatus.parse(item.refund_status),
        refunded_at=to_timestamp(item.refunded_at),
        name=item.name,
    )


def order_to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        created_at=to_timestamp(order.created_at),
        status=OrderStatus.parse(order.status),
        payment_status=PaymentStatus.parse(order.payment_status),
        refund_flag=bool(order.refunded),
        refund_status=OrderStatus.parse(order.refund_status),
        refunded_at=to_timestamp(order.refunded_at),
        line_items=tuple(item_to_line(item) for item in order.items),
        shipment_status=ShipmentStatus.parse(order.shipment_status),
        total_amount=to_decimal(order.total_amount),
        business_owner_ref=order.business_buyer_id,
        updated_at=to_timestamp(order.updated_at),
        raw_status=order.status,
    )


class SqlCatalogSource:
    """Catalog query: all products of a business"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_catalog(self, business_id: str) -> List[CatalogEntry]:
        result = await self.session.execute(
            select(Product)
            .where(Product.business_id == business_id)
            .order_by(Product.created_at.desc(), Product.id)
        )
        products = result.scalars().all()
        logger.debug("Catalog fetched", business_id=business_id, products=len(products))
        return [product_to_entry(p) for p in products]


class SqlOrderSource:
    """Order queries: by catalog identity keys, and by buyer"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_orders(self, keys: FrozenSet[str], since: datetime) -> List[OrderRecord]:
        """Orders with any line identifier in keys and created at or after since"""
        if not keys:
            return []

        key_list = sorted(keys)
        item_matches = or_(
            OrderItem.product_id.in_(key_list),
            OrderItem.custom_id.in_(key_list),
            OrderItem.pid.in_(key_list),
            OrderItem.sku.in_(key_list),
        )
        # Orders missing created_at qualify through updated_at
        in_window = or_(
            Order.created_at >= since,
            and_(Order.created_at.is_(None), Order.updated_at >= since),
        )

        result = await self.session.execute(
            select(Order)
            .where(Order.items.any(item_matches))
            .where(in_window)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id)
        )
        orders = result.scalars().all()
        logger.debug("Orders fetched", keys=len(key_list), since=since.isoformat(), orders=len(orders))
        return [order_to_record(o) for o in orders]

    async def fetch_buyer_orders(self, buyer_id: str) -> List[OrderRecord]:
        result = await self.session.execute(
            select(Order)
            .where(Order.business_buyer_id == buyer_id)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id)
        )
        return [order_to_record(o) for o in result.scalars().all()]
