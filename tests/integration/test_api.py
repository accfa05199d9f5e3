"""
Integration Tests - HTTP API
"""
from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from portal_analytics.analytics import DashboardService
from portal_analytics.analytics.records import LineItem
from portal_analytics.config import Settings
from portal_analytics.config.settings import SecuritySettings
from portal_analytics.serving.api import create_api_app
from portal_analytics.serving.api.routes import get_dashboard_service

pytestmark = pytest.mark.integration

NOW_PARAM = "2025-06-15T12:00:00Z"


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="testing")


@pytest.fixture
def fake_service(fake_catalog, fake_orders, make_entry, make_order, now):
    catalog = {"biz-1": [make_entry(price="100", stock=5, sold=3)]}
    orders = [
        make_order(LineItem(sku="SKU-1", quantity=2), created_at=now - timedelta(days=1),
                   shipment="shipped", total="200", buyer="buyer-1", order_id="o-1"),
        make_order(LineItem(sku="SKU-1", quantity=1), status="CANCELLED",
                   created_at=now - timedelta(days=2), total="100", buyer="buyer-1", order_id="o-2"),
    ]
    return DashboardService(fake_catalog(catalog), fake_orders(orders))


@pytest.fixture
def client(settings, fake_service) -> TestClient:
    app = create_api_app(settings)
    app.dependency_overrides[get_dashboard_service] = lambda: fake_service
    return TestClient(app)


class TestDashboardEndpoints:
    """Tests for dashboard routes over injected sources"""

    def test_dashboard(self, client):
        response = client.get("/api/v1/dashboards/biz-1", params={"role": "seller", "now": NOW_PARAM})

        assert response.status_code == 200
        body = response.json()
        assert body["business_id"] == "biz-1"
        assert body["kpis"]["sold_quantity"] == 2
        assert body["kpis"]["revenue"] == 200.0
        assert body["kpis"]["sales_source"] == "orders"
        assert body["kpis"]["low_stock_threshold"] == 5
        assert body["orders_by_status"] == {"CANCELLED": 1, "COMPLETED": 1}
        assert [o["id"] for o in body["recent_orders"]] == ["o-1", "o-2"]

    def test_kpis(self, client):
        response = client.get("/api/v1/dashboards/biz-1/kpis", params={"now": NOW_PARAM})

        assert response.status_code == 200
        assert response.json()["fulfillment"]["shipped"] == 1

    def test_low_stock_override(self, client):
        response = client.get(
            "/api/v1/dashboards/biz-1/kpis",
            params={"now": NOW_PARAM, "low_stock_threshold": 6},
        )

        assert response.json()["totals"]["low_stock"] == 1

    def test_negative_threshold_rejected(self, client):
        response = client.get("/api/v1/dashboards/biz-1/kpis", params={"low_stock_threshold": -1})

        assert response.status_code == 422

    def test_trends_single_granularity(self, client):
        response = client.get(
            "/api/v1/dashboards/biz-1/trends",
            params={"granularity": "month", "now": NOW_PARAM},
        )

        body = response.json()
        assert response.status_code == 200
        assert len(body["monthly"]) == 12
        assert body["daily"] == []
        assert body["monthly"][-1] == {"label": "2025-06", "sales": 200.0, "orders": 1}

    def test_trends_invalid_granularity(self, client):
        response = client.get("/api/v1/dashboards/biz-1/trends", params={"granularity": "week"})

        assert response.status_code == 422

    def test_fulfillment(self, client):
        response = client.get("/api/v1/dashboards/biz-1/fulfillment", params={"now": NOW_PARAM})

        assert response.json() == {
            "pending": 0, "processing": 0, "shipped": 1, "in_transit": 0, "delivered": 0,
        }

    def test_buyer_summary(self, client):
        response = client.get("/api/v1/buyers/buyer-1/summary")

        body = response.json()
        assert body["total_orders"] == 2
        assert body["excluded_orders"] == 1
        assert body["total_spent"] == 200.0

    def test_source_failure_is_503(self, settings, fake_catalog, fake_orders):
        app = create_api_app(settings)
        app.dependency_overrides[get_dashboard_service] = lambda: DashboardService(
            fake_catalog(error=ConnectionError("refused")), fake_orders()
        )
        client = TestClient(app)

        response = client.get("/api/v1/dashboards/biz-1")

        assert response.status_code == 503
        assert response.json()["source"] == "catalog"


class TestPlatformEndpoints:
    """Tests for health, info and middleware"""

    def test_liveness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}

    def test_readiness_without_database(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 503

    def test_info(self, client):
        body = client.get("/api/v1/info").json()

        assert body["name"] == "portal-analytics"
        assert body["environment"] == "testing"

    def test_headers(self, client):
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Response-Time" in response.headers

    def test_rate_limit(self, fake_service):
        settings = Settings(app_env="testing", security=SecuritySettings(rate_limit_requests=2))
        app = create_api_app(settings)
        app.dependency_overrides[get_dashboard_service] = lambda: fake_service
        client = TestClient(app)

        statuses = [client.get("/api/v1/info").status_code for _ in range(3)]

        assert statuses == [200, 200, 429]


class TestDatabaseBackedApi:
    """Full stack against the seeded database"""

    async def test_dashboard(self, database, settings):
        app = create_api_app(settings, database=database)
        app.state.database = database
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            health = await client.get("/api/v1/health")
            response = await client.get(
                "/api/v1/dashboards/biz-1", params={"role": "seller", "now": NOW_PARAM}
            )

        assert health.json()["checks"]["database"]["status"] == "healthy"
        assert response.status_code == 200
        body = response.json()
        assert body["kpis"]["sold_quantity"] == 6
        assert body["kpis"]["revenue"] == 345.0
        assert body["orders_total"] == 5
