"""
Transaction Classifier

Pure predicates deciding whether an order, and each of its line items,
may contribute revenue to a business's KPIs.

Exclusion runs at two granularities: a cancelled or refunded order never
counts, while a refunded line inside an otherwise valid order only drops
that line.
"""

from enum import Enum

from .records import LineItem, OrderRecord
from .statuses import (
    CANCELLATION_STATES,
    ITEM_REFUND_STATES,
    PAID_STATES,
    REFUND_PAYMENT_STATES,
    REFUND_STATES,
)


class Classification(str, Enum):
    """Outcome of order classification"""
    COUNTABLE = "countable"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    UNPAID = "unpaid"


def classify(order: OrderRecord) -> Classification:
    """Classify an order; exclusions take precedence over paid states"""
    if order.status in CANCELLATION_STATES:
        return Classification.CANCELLED

    if (
        order.status in REFUND_STATES
        or order.refund_status in REFUND_STATES
        or order.payment_status in REFUND_PAYMENT_STATES
        or order.refund_flag
        or order.refunded_at is not None
    ):
        return Classification.REFUNDED

    if order.status in PAID_STATES:
        return Classification.COUNTABLE

    return Classification.UNPAID


def is_countable(order: OrderRecord) -> bool:
    """True when the order's revenue may be attributed to a business"""
    return classify(order) is Classification.COUNTABLE


def is_countable_item(item: LineItem) -> bool:
    """False for refunded line items, regardless of the order's status"""
    if item.refund_flag or item.refunded_at is not None:
        return False
    return item.refund_status not in ITEM_REFUND_STATES
