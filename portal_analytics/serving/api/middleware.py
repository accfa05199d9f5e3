"""
API Middleware

- Request logging with a per-request ID bound to the log context
- Per-client rate limiting
- Security headers
"""

from collections import defaultdict, deque
from typing import Callable, Deque, Dict
import asyncio
import time
import uuid

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with timing; echo the request ID back to the caller"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", path=request.url.path)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limiter keyed by client address.

    State is per process; with several gunicorn workers each worker
    enforces its own limit.
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 60,
        exempt_paths: tuple = ("/api/v1/health",),
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.exempt_paths = exempt_paths
        self.clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    @property
    def tracked_clients(self) -> int:
        return len(self._requests)

    def _sweep(self, now: float) -> None:
        """Forget clients with no request inside the window; runs once per window"""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        idle = [
            client for client, history in self._requests.items()
            if not history or now - history[-1] >= self.window_seconds
        ]
        for client in idle:
            del self._requests[client]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.exempt_paths):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        now = self.clock()

        async with self._lock:
            self._sweep(now)
            history = self._requests[client_id]
            while history and now - history[0] >= self.window_seconds:
                history.popleft()

            if len(history) >= self.max_requests:
                logger.warning("Rate limit exceeded", client=client_id, requests=len(history))
                return JSONResponse(
                    {"error": "rate_limited", "message": "Rate limit exceeded"},
                    status_code=429,
                    headers={
                        "Retry-After": str(self.window_seconds),
                        "X-RateLimit-Limit": str(self.max_requests),
                        "X-RateLimit-Remaining": "0",
                    },
                )

            history.append(now)
            remaining = self.max_requests - len(history)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response
