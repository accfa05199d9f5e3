"""
Identity Resolver

Maps every identifier form an order line item may carry (legacy custom
SKU, internal object id) back to the business's catalog entry.

Line items are matched with an ordered list of extraction strategies::

    product_id -> custom_id -> pid -> sku

The first candidate whose value is a registered key resolves the item.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

import structlog

from .records import CatalogEntry, LineItem, OrderRecord, clean_key

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class KeyStrategy:
    """Reads one identifier field off a line item"""
    field_name: str
    extract: Callable[[LineItem], Optional[str]]


LINE_ITEM_KEY_STRATEGIES: Tuple[KeyStrategy, ...] = (
    KeyStrategy("product_id", attrgetter("product_id")),
    KeyStrategy("custom_id", attrgetter("custom_id")),
    KeyStrategy("pid", attrgetter("pid")),
    KeyStrategy("sku", attrgetter("sku")),
)


def candidate_keys(
    item: LineItem,
    strategies: Tuple[KeyStrategy, ...] = LINE_ITEM_KEY_STRATEGIES,
) -> Iterator[str]:
    """Yield the item's non-empty identifiers in precedence order"""
    for strategy in strategies:
        key = clean_key(strategy.extract(item))
        if key:
            yield key


@dataclass(frozen=True)
class IdentityMatch:
    """A line item resolved to a catalog entry"""
    key: str
    entry: CatalogEntry

    @property
    def product_key(self) -> str:
        """Grouping key: the entry's canonical identity"""
        return self.entry.identity or self.key


@dataclass(frozen=True)
class IdentityIndex:
    """
    Key set plus lookup for one business's catalog.

    ``lookup`` is total over ``keys``; both are read-only so an index can
    be shared between requests.
    """
    keys: FrozenSet[str]
    lookup: Mapping[str, CatalogEntry]

    def __len__(self) -> int:
        return len(self.keys)

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def match(self, item: LineItem) -> Optional[IdentityMatch]:
        """Resolve a line item, None when no identifier is known"""
        for key in candidate_keys(item):
            if key in self.keys:
                return IdentityMatch(key=key, entry=self.lookup[key])
        return None

    def references(self, order: OrderRecord) -> bool:
        """True when any line item of the order resolves to this catalog"""
        return any(self.match(item) is not None for item in order.line_items)


def resolve(catalog_entries: Iterable[CatalogEntry]) -> IdentityIndex:
    """
    Build the identity index for a catalog.

    Both the primary and the secondary key of every entry are registered.
    Entries without a primary key register only their secondary key; when
    two entries claim the same key the first one keeps it.
    """
    lookup: Dict[str, CatalogEntry] = {}
    collisions = 0

    for entry in catalog_entries:
        for raw_key in (entry.primary_key, entry.secondary_key):
            key = clean_key(raw_key)
            if key is None:
                continue
            existing = lookup.get(key)
            if existing is None:
                lookup[key] = entry
            elif existing is not entry:
                collisions += 1

    if collisions:
        logger.warning("Duplicate catalog identity keys ignored", collisions=collisions)

    return IdentityIndex(keys=frozenset(lookup), lookup=dict(lookup))
