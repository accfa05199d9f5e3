"""
Status Vocabularies

Order, payment and shipment states as received from the payment and
fulfillment collaborators are inconsistently cased ("Completed",
"COMPLETED", "completed") and sometimes spelled with spaces ("In Transit").
Raw strings are parsed once, at ingestion, into the enums below; the
classifier and aggregators only ever compare enum members.
"""

from enum import Enum
from typing import Any, Optional


def _normalize(value: Any) -> str:
    """Upper-case token with spaces/hyphens folded to underscores"""
    if value is None:
        return ""
    text = str(value).strip().upper()
    for sep in (" ", "-"):
        text = text.replace(sep, "_")
    return text


class OrderStatus(str, Enum):
    """Order lifecycle and refund states"""
    # Paid states
    COMPLETED = "COMPLETED"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    # Cancellation states
    CANCELLED = "CANCELLED"
    CANCELED = "CANCELED"
    VOIDED = "VOIDED"
    # Refund states
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
    FULL = "FULL"
    FULLY_REFUNDED = "FULLY_REFUNDED"
    REFUND_SUBMITTED = "REFUND_SUBMITTED"
    # Pre-payment states
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    CAPTURED = "CAPTURED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> Optional["OrderStatus"]:
        """None for a blank value, UNKNOWN for anything unrecognized"""
        token = _normalize(value)
        if not token:
            return None
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


PAID_STATES = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.PAID,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
})

CANCELLATION_STATES = frozenset({
    OrderStatus.CANCELLED,
    OrderStatus.CANCELED,
    OrderStatus.VOIDED,
})

REFUND_STATES = frozenset({
    OrderStatus.REFUNDED,
    OrderStatus.PARTIALLY_REFUNDED,
    OrderStatus.FULL,
    OrderStatus.FULLY_REFUNDED,
    OrderStatus.REFUND_SUBMITTED,
})

# Narrower set: a line item is only refunded once the refund has completed
ITEM_REFUND_STATES = frozenset({
    OrderStatus.REFUNDED,
    OrderStatus.FULL,
    OrderStatus.FULLY_REFUNDED,
})


class PaymentStatus(str, Enum):
    """Payment capture states"""
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
    REFUND_SUBMITTED = "REFUND_SUBMITTED"
    REFUND_PENDING = "REFUND_PENDING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> Optional["PaymentStatus"]:
        token = _normalize(value)
        if not token:
            return None
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


REFUND_PAYMENT_STATES = frozenset({
    PaymentStatus.REFUNDED,
    PaymentStatus.PARTIALLY_REFUNDED,
    PaymentStatus.REFUND_SUBMITTED,
    PaymentStatus.REFUND_PENDING,
})


class ShipmentStatus(str, Enum):
    """Shipment tracking states reported on dashboards"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"

    @classmethod
    def parse(cls, value: Any) -> "ShipmentStatus":
        """Unrecognized or missing tracking states count as PENDING"""
        try:
            return cls(_normalize(value))
        except ValueError:
            return cls.PENDING
