"""
Fulfillment Aggregator

Counts a business's countable orders by shipment-tracking status. Item
refunds are ignored here: shipment status reflects logistics, not revenue.
"""

from typing import Dict, Iterable, Optional

from pydantic import BaseModel
import structlog

from .classifier import is_countable
from .identity import IdentityIndex
from .records import OrderRecord
from .revenue import TimeWindow
from .statuses import ShipmentStatus

logger = structlog.get_logger(__name__)


class FulfillmentSummary(BaseModel):
    """Order counts per shipment status"""
    pending: int = 0
    processing: int = 0
    shipped: int = 0
    in_transit: int = 0
    delivered: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.shipped + self.in_transit + self.delivered


_FIELD_BY_STATUS: Dict[ShipmentStatus, str] = {
    ShipmentStatus.PENDING: "pending",
    ShipmentStatus.PROCESSING: "processing",
    ShipmentStatus.SHIPPED: "shipped",
    ShipmentStatus.IN_TRANSIT: "in_transit",
    ShipmentStatus.DELIVERED: "delivered",
}


def aggregate_fulfillment(
    orders: Iterable[OrderRecord],
    index: IdentityIndex,
    window: Optional[TimeWindow] = None,
) -> FulfillmentSummary:
    """
    Bucket orders referencing the catalog by shipment status.

    Each order is counted once, however many of its lines match.
    """
    counts = {name: 0 for name in _FIELD_BY_STATUS.values()}

    for order in orders:
        if not is_countable(order):
            continue
        if window is not None and not window.contains(order.effective_timestamp):
            continue
        if not index.references(order):
            continue
        counts[_FIELD_BY_STATUS[order.shipment_status]] += 1

    summary = FulfillmentSummary(**counts)
    logger.debug("Fulfillment aggregated", total=summary.total, **counts)
    return summary
