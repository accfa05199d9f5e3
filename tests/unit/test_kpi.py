"""
Unit Tests - KPI Composition and Fallback Estimation
"""
from decimal import Decimal

import pytest

from portal_analytics.analytics.fallback import estimate_from_lifetime
from portal_analytics.analytics.fulfillment import FulfillmentSummary
from portal_analytics.analytics.identity import resolve
from portal_analytics.analytics.kpi import (
    SALES_SOURCE_ESTIMATE,
    SALES_SOURCE_ORDERS,
    LowStockRule,
    compose_kpis,
    compute_stock_metrics,
)
from portal_analytics.analytics.records import LineItem
from portal_analytics.analytics.revenue import TimeWindow, aggregate_revenue


class TestLowStockRule:
    """Tests for the low-stock boundary"""

    def test_threshold_is_exclusive_by_default(self):
        rule = LowStockRule(threshold=10)

        assert not rule.is_low(10)
        assert rule.is_low(9)

    def test_inclusive_rule(self):
        assert LowStockRule(threshold=10, inclusive=True).is_low(10)

    @pytest.mark.parametrize("stock", [0, -3])
    def test_out_of_stock_is_not_low(self, stock):
        assert not LowStockRule(threshold=10, inclusive=True).is_low(stock)


class TestStockMetrics:
    """Tests for catalog-derived totals"""

    def test_totals(self, make_entry):
        catalog = [
            make_entry(primary_key="A", price="2.50", stock=4),
            make_entry(primary_key="B", price="10", stock=0),
            make_entry(primary_key="C", price="1", stock=10),
        ]
        metrics = compute_stock_metrics(catalog, LowStockRule(threshold=10))

        assert metrics.product_count == 3
        assert metrics.stock_count == 14
        assert metrics.in_stock == 2
        assert metrics.out_of_stock == 1
        assert metrics.low_stock == 1
        assert metrics.inventory_value == Decimal("20.00")

    def test_stock_equal_to_threshold_not_low(self, make_entry):
        metrics = compute_stock_metrics([make_entry(stock=10)], LowStockRule(threshold=10))

        assert metrics.low_stock == 0


class TestFallbackEstimator:
    """Tests for the lifetime-counter estimate"""

    def test_estimate_from_sold_count(self, make_entry):
        result = estimate_from_lifetime([make_entry(price="10", sold=7)])

        assert result.is_estimate
        assert result.total_quantity == 7
        assert result.total_revenue == Decimal("70")

    def test_zero_counters_give_zero(self, make_entry):
        result = estimate_from_lifetime([make_entry(sold=0)])

        assert result.total_quantity == 0
        assert result.per_product == []

    def test_sorted_by_quantity(self, make_entry):
        result = estimate_from_lifetime([
            make_entry(primary_key="A", sold=1),
            make_entry(primary_key="B", sold=4),
        ])

        assert [p.key for p in result.per_product] == ["B", "A"]


class TestComposeKpis:
    """Tests for snapshot composition"""

    def test_orders_source(self, make_entry, make_order):
        catalog = [make_entry(price="100", stock=5)]
        revenue = aggregate_revenue(
            [make_order(LineItem(sku="SKU-1", quantity=2))], resolve(catalog)
        )
        snapshot = compose_kpis(catalog, revenue, low_stock=LowStockRule(threshold=10))

        assert snapshot.sold_quantity == 2
        assert snapshot.revenue == Decimal("200.00")
        assert snapshot.sales_source == SALES_SOURCE_ORDERS
        assert not snapshot.is_estimate
        assert snapshot.per_product[0].quantity == 2

    def test_refunded_only_history_falls_back_to_zero_estimate(self, make_entry, make_order):
        catalog = [make_entry(price="100", stock=5, sold=0)]
        revenue = aggregate_revenue(
            [make_order(LineItem(sku="SKU-1", quantity=2), status="REFUNDED")], resolve(catalog)
        )
        snapshot = compose_kpis(catalog, revenue)

        assert snapshot.sold_quantity == 0
        assert snapshot.revenue == Decimal("0.00")
        assert snapshot.is_estimate

    def test_no_orders_uses_lifetime_estimate(self, make_entry):
        catalog = [make_entry(price="10", sold=7)]
        snapshot = compose_kpis(catalog, aggregate_revenue([], resolve(catalog)))

        assert snapshot.sales_source == SALES_SOURCE_ESTIMATE
        assert snapshot.sold_quantity == 7
        assert snapshot.revenue == Decimal("70.00")

    def test_sources_never_mixed(self, make_entry, make_order):
        """Order data for one product suppresses estimates for all others"""
        catalog = [
            make_entry(primary_key="A", secondary_key=None, price="1", sold=0),
            make_entry(primary_key="B", secondary_key=None, price="1", sold=500),
        ]
        revenue = aggregate_revenue([make_order(LineItem(sku="A", quantity=1))], resolve(catalog))
        snapshot = compose_kpis(catalog, revenue)

        assert snapshot.sold_quantity == 1
        assert [p.key for p in snapshot.per_product] == ["A"]

    def test_revenue_rounded_only_at_output(self, make_entry, make_order):
        catalog = [make_entry(price="0.333")]
        revenue = aggregate_revenue([make_order(LineItem(sku="SKU-1", quantity=3))], resolve(catalog))
        snapshot = compose_kpis(catalog, revenue)

        assert revenue.total_revenue == Decimal("0.999")
        assert snapshot.revenue == Decimal("1.00")

    def test_window_and_threshold_reported(self, make_entry, now):
        window = TimeWindow.trailing_days(30, now)
        snapshot = compose_kpis(
            [make_entry()],
            aggregate_revenue([], resolve([])),
            fulfillment=FulfillmentSummary(shipped=2),
            low_stock=LowStockRule(threshold=5),
            window=window,
        )

        assert snapshot.window_end == now
        assert snapshot.low_stock_threshold == 5
        assert snapshot.fulfillment.shipped == 2

    def test_json_money_is_numeric(self, make_entry):
        snapshot = compose_kpis([make_entry(price="19.99", sold=1)], aggregate_revenue([], resolve([])))
        payload = snapshot.model_dump(mode="json")

        assert payload["revenue"] == 19.99
        assert payload["totals"]["inventory_value"] == 99.95

    def test_deterministic_output(self, make_entry, make_order):
        catalog = [make_entry()]
        orders = [make_order(LineItem(sku="SKU-1", quantity=2), order_id="o-1")]

        first = compose_kpis(catalog, aggregate_revenue(orders, resolve(catalog)))
        second = compose_kpis(catalog, aggregate_revenue(orders, resolve(catalog)))

        assert first.model_dump_json() == second.model_dump_json()
