"""
Fallback Estimator

Approximates lifetime sales from the catalog's lifetime sold counters when
no qualifying order history exists. The estimate cannot see historical
refunds, so results are flagged ``is_estimate`` and must be presented as a
lifetime estimate, not as trailing-window actuals.
"""

from typing import Dict, Iterable

from .records import CatalogEntry
from .revenue import ProductSales, RevenueAggregate, sort_by_quantity


def estimate_from_lifetime(catalog_entries: Iterable[CatalogEntry]) -> RevenueAggregate:
    """Estimate sold quantity and revenue from lifetime counters"""
    result = RevenueAggregate(is_estimate=True)
    products: Dict[str, ProductSales] = {}

    for entry in catalog_entries:
        sold = entry.lifetime_sold_count
        key = entry.identity
        if sold <= 0 or key is None:
            continue

        revenue = sold * entry.unit_price
        product = products.get(key)
        if product is None:
            product = ProductSales.for_entry(key, entry)
            products[key] = product
        product.quantity += sold
        product.revenue += revenue

        result.total_quantity += sold
        result.total_revenue += revenue

    result.per_product = sort_by_quantity(products.values())
    return result
