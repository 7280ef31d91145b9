"""Request logging and HTTP metrics middleware."""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, ClassVar

from prometheus_client import Counter, Histogram

from app.logging import get_logger

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"

HTTP_REQUESTS = Counter(
    "http_requests_total",
    "HTTP requests handled",
    ["method", "route", "status"],
)

HTTP_REQUEST_TIME = Histogram(
    "http_request_seconds",
    "HTTP request latency",
    ["method", "route"],
)


class ObservabilityMiddleware:
    """Tags each request with an id, logs it and records latency."""

    EXEMPT_PATHS: ClassVar[set[str]] = {"/health", "/metrics"}

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http" or scope.get("path") in self.EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        request_id = headers.get(REQUEST_ID_HEADER.encode(), b"").decode() or uuid.uuid4().hex
        method = scope.get("method", "")
        started = time.monotonic()
        status_code = 500

        async def send_with_request_id(message: Message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message["headers"] = [
                    *message.get("headers", []),
                    (REQUEST_ID_HEADER.encode(), request_id.encode()),
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            elapsed = time.monotonic() - started
            route = scope.get("route")
            route_path = getattr(route, "path", None) or "unmatched"
            HTTP_REQUESTS.labels(method=method, route=route_path, status=str(status_code)).inc()
            HTTP_REQUEST_TIME.labels(method=method, route=route_path).observe(elapsed)
            logger.info(
                "http_request method=%s path=%s status=%s duration_ms=%s request_id=%s",
                method,
                scope.get("path"),
                status_code,
                int(elapsed * 1000),
                request_id,
            )
