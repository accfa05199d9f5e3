"""
Analytics Domain Records

Immutable, request-scoped views of catalog entries and orders. Raw rows
from the database, JSON documents or snapshot DataFrames are converted
here, once, so that the aggregators work on clean types:

- money as ``Decimal`` (malformed values become 0)
- timestamps as timezone-aware UTC ``datetime`` (malformed values become None)
- statuses as enums (see ``statuses``)

Both snake_case and the portal's legacy camelCase keys are accepted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Tuple
import re

from .statuses import OrderStatus, PaymentStatus, ShipmentStatus

ZERO = Decimal("0")
CENTS = Decimal("0.01")

_CURRENCY_CHARS = re.compile(r"[^\d.\-]")
_TRUE_STRINGS = {"true", "1", "yes", "y", "t"}


# =============================================================================
# FIELD PARSERS
# =============================================================================

def to_decimal(value: Any) -> Decimal:
    """
    Parse a monetary value.

    Accepts numbers, numeric strings, currency-formatted strings
    ("$1,200.50") and money objects ({"value": "15.00", "currency": "USD"}).
    Anything else yields Decimal("0").
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, Mapping):
        return to_decimal(value.get("value"))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() keeps the shortest repr, so 19.99 stays 19.99
        return to_decimal(str(value))

    text = _CURRENCY_CHARS.sub("", str(value).strip())
    if not text:
        return ZERO
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def to_optional_decimal(value: Any) -> Optional[Decimal]:
    """Like ``to_decimal`` but keeps "absent" distinct from zero"""
    if value is None:
        return None
    if isinstance(value, Mapping) and value.get("value") is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_decimal(value)


def round_money(value: Decimal) -> Decimal:
    """Round to cents; only used at output boundaries"""
    return value.quantize(CENTS)


def to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def to_quantity(value: Any) -> int:
    """Line quantities are at least one unit"""
    return max(1, to_int(value, default=1))


def to_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def to_timestamp(value: Any) -> Optional[datetime]:
    """Parse to an aware UTC datetime; naive values are taken as UTC"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def clean_key(value: Any) -> Optional[str]:
    """Trimmed identity key, None when blank"""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    """First non-None value among several key spellings"""
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class CatalogEntry:
    """A business's product record, read-only to the analytics core"""
    primary_key: Optional[str]
    secondary_key: Optional[str]
    name: str = ""
    unit_price: Decimal = ZERO
    stock_quantity: int = 0
    lifetime_sold_count: int = 0
    category: Optional[str] = None
    image_ref: Optional[str] = None

    @property
    def identity(self) -> Optional[str]:
        """Canonical key used to group sales of this entry"""
        return clean_key(self.primary_key) or clean_key(self.secondary_key)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "CatalogEntry":
        return cls(
            primary_key=clean_key(_pick(raw, "primary_key", "custom_id", "customId")),
            secondary_key=clean_key(_pick(raw, "secondary_key", "id", "_id", "product_id")),
            name=str(_pick(raw, "name") or ""),
            unit_price=max(ZERO, to_decimal(_pick(raw, "unit_price", "unitPrice", "price"))),
            stock_quantity=max(0, to_int(_pick(raw, "stock_quantity", "stockQuantity", "stock"))),
            lifetime_sold_count=max(
                0, to_int(_pick(raw, "lifetime_sold_count", "sold_count", "soldCount"))
            ),
            category=_pick(raw, "category"),
            image_ref=_pick(raw, "image_ref", "image_url", "imageUrl"),
        )


@dataclass(frozen=True)
class LineItem:
    """One product-quantity-price entry within an order"""
    product_id: Optional[str] = None
    custom_id: Optional[str] = None
    pid: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 1
    unit_price: Optional[Decimal] = None
    refund_flag: bool = False
    refund_status: Optional[OrderStatus] = None
    refunded_at: Optional[datetime] = None
    name: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LineItem":
        return cls(
            product_id=clean_key(_pick(raw, "product_id", "productId")),
            custom_id=clean_key(_pick(raw, "custom_id", "customId")),
            pid=clean_key(_pick(raw, "pid")),
            sku=clean_key(_pick(raw, "sku")),
            quantity=to_quantity(_pick(raw, "quantity", "qty")),
            unit_price=to_optional_decimal(_pick(raw, "unit_price", "unitPrice", "price")),
            refund_flag=to_flag(_pick(raw, "refund_flag", "refunded", "isRefunded")),
            refund_status=OrderStatus.parse(_pick(raw, "refund_status", "refundStatus")),
            refunded_at=to_timestamp(_pick(raw, "refunded_at", "refundedAt")),
            name=_pick(raw, "name"),
        )


@dataclass(frozen=True)
class OrderRecord:
    """A settled or in-flight order as seen by the analytics core"""
    id: str
    created_at: Optional[datetime] = None
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    refund_flag: bool = False
    refund_status: Optional[OrderStatus] = None
    refunded_at: Optional[datetime] = None
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)
    shipment_status: ShipmentStatus = ShipmentStatus.PENDING
    total_amount: Decimal = ZERO
    business_owner_ref: Optional[str] = None
    updated_at: Optional[datetime] = None
    raw_status: Optional[str] = None

    @property
    def effective_timestamp(self) -> Optional[datetime]:
        """Timestamp used for window checks: created_at, else updated_at"""
        return self.created_at or self.updated_at

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "OrderRecord":
        tracking = raw.get("shippingTracking")
        shipment = _pick(raw, "shipment_status", "shipmentStatus")
        if shipment is None and isinstance(tracking, Mapping):
            shipment = tracking.get("status")

        raw_status = _pick(raw, "status")
        items: Iterable[Any] = _pick(raw, "line_items", "items") or ()

        return cls(
            id=str(_pick(raw, "id", "order_id", "orderId", "_id") or ""),
            created_at=to_timestamp(_pick(raw, "created_at", "createdAt")),
            status=OrderStatus.parse(raw_status),
            payment_status=PaymentStatus.parse(_pick(raw, "payment_status", "paymentStatus")),
            refund_flag=to_flag(_pick(raw, "refund_flag", "refunded", "isRefunded")),
            refund_status=OrderStatus.parse(_pick(raw, "refund_status", "refundStatus")),
            refunded_at=to_timestamp(_pick(raw, "refunded_at", "refundedAt")),
            line_items=tuple(
                LineItem.from_mapping(item) for item in items if isinstance(item, Mapping)
            ),
            shipment_status=ShipmentStatus.parse(shipment),
            total_amount=to_decimal(_pick(raw, "total_amount", "totalAmount", "amount")),
            business_owner_ref=clean_key(
                _pick(raw, "business_owner_ref", "business_buyer_id", "businessBuyer")
            ),
            updated_at=to_timestamp(_pick(raw, "updated_at", "updatedAt")),
            raw_status=str(raw_status).strip() if raw_status is not None else None,
        )
