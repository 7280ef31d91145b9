"""Prometheus metrics for the chat/ticketing bridge."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

ESCALATIONS = Counter(
    "escalations_total",
    "Escalation requests by variant and outcome",
    ["variant", "outcome"],  # outcome: reused, created, failed
)

WEBHOOK_EVENTS = Counter(
    "webhook_events_total",
    "Inbound ticket webhook deliveries",
    ["status"],  # status: relayed, no_channel, ignored, unauthorized, error
)

PROVIDER_REQUESTS = Counter(
    "provider_requests_total",
    "Outbound provider API calls",
    ["provider", "status"],  # status: ok, http_error, request_error
)

PROVIDER_REQUEST_TIME = Histogram(
    "provider_request_seconds",
    "Latency of outbound provider API calls",
    ["provider"],
)
