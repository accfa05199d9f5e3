"""
Unit Tests - Rate Limiting
"""
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from portal_analytics.serving.api.middleware import RateLimitMiddleware


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_request(host: str, path: str = "/api/v1/dashboards/biz-1") -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": [],
        "client": (host, 50000),
    })


async def call_next(request: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


def make_limiter(clock: FakeClock, max_requests: int = 10) -> RateLimitMiddleware:
    return RateLimitMiddleware(
        PlainTextResponse("ok"),
        max_requests=max_requests,
        window_seconds=60,
        clock=clock,
    )


class TestRateLimitMiddleware:
    """Tests for the sliding-window limiter"""

    async def test_limit_enforced_within_window(self):
        clock = FakeClock()
        limiter = make_limiter(clock, max_requests=1)

        first = await limiter.dispatch(make_request("10.0.0.1"), call_next)
        clock.now = 30
        second = await limiter.dispatch(make_request("10.0.0.1"), call_next)

        assert first.status_code == 200
        assert second.status_code == 429

    async def test_idle_clients_are_forgotten(self):
        clock = FakeClock()
        limiter = make_limiter(clock)

        await limiter.dispatch(make_request("10.0.0.1"), call_next)
        assert limiter.tracked_clients == 1

        clock.now = 61
        await limiter.dispatch(make_request("10.0.0.2"), call_next)

        assert limiter.tracked_clients == 1

    async def test_active_clients_are_kept(self):
        clock = FakeClock()
        limiter = make_limiter(clock)

        await limiter.dispatch(make_request("10.0.0.1"), call_next)
        clock.now = 50
        await limiter.dispatch(make_request("10.0.0.1"), call_next)
        clock.now = 61
        await limiter.dispatch(make_request("10.0.0.2"), call_next)

        assert limiter.tracked_clients == 2

    async def test_exempt_paths_not_tracked(self):
        limiter = make_limiter(FakeClock())

        response = await limiter.dispatch(make_request("10.0.0.1", "/api/v1/health"), call_next)

        assert response.status_code == 200
        assert limiter.tracked_clients == 0
