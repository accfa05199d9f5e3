"""
Database Models - Portal Catalog and Orders

Tables read by the analytics engine. They are owned and written by the
portal's catalog, checkout and fulfillment services; analytics only reads.

- products: a business's catalog (custom SKU + internal id)
- orders: order header with payment, refund and shipment state
- order_items: line items, carrying whichever identifier convention was
  current when the order was placed
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """
    Catalog Product

    ``custom_id`` is the human-friendly SKU; ``id`` is the internal id.
    Legacy orders reference either one.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False)
    custom_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    image_url: Mapped[Optional[str]] = mapped_column(String(500))

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    stock: Mapped[int] = mapped_column(Integer, default=0)
    sold_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_products_business", "business_id"),
    )


class Order(Base):
    """
    Order Header

    ``status``, ``payment_status`` and ``refund_status`` are stored exactly as
    received from the payment provider and are parsed on read.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    order_number: Mapped[Optional[str]] = mapped_column(String(64), unique=True)
    business_buyer_id: Mapped[Optional[str]] = mapped_column(String(64))

    status: Mapped[Optional[str]] = mapped_column(String(40))
    payment_status: Mapped[Optional[str]] = mapped_column(String(40))
    refunded: Mapped[bool] = mapped_column(Boolean, default=False)
    refund_status: Mapped[Optional[str]] = mapped_column(String(40))
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    shipment_status: Mapped[Optional[str]] = mapped_column(String(40))

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    __table_args__ = (
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_buyer_created", "business_buyer_id", "created_at"),
        Index("ix_orders_status", "status"),
    )


class OrderItem(Base):
    """Order Line Item"""
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Identifier conventions, newest first
    product_id: Mapped[Optional[str]] = mapped_column(String(100))
    custom_id: Mapped[Optional[str]] = mapped_column(String(100))
    pid: Mapped[Optional[str]] = mapped_column(String(100))
    sku: Mapped[Optional[str]] = mapped_column(String(100))

    name: Mapped[Optional[str]] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    refunded: Mapped[bool] = mapped_column(Boolean, default=False)
    refund_status: Mapped[Optional[str]] = mapped_column(String(40))
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    order: Mapped["Order"] = relationship(back_populates="items")

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
        Index("ix_order_items_product_id", "product_id"),
        Index("ix_order_items_custom_id", "custom_id"),
        Index("ix_order_items_sku", "sku"),
    )
