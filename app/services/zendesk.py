"""Zendesk Support API v2 client."""

from __future__ import annotations

import time
from typing import Any

import httpx

from app.logging import get_logger
from app.services.metrics import PROVIDER_REQUEST_TIME, PROVIDER_REQUESTS

logger = get_logger(__name__)

_PROVIDER = "zendesk"


class ZendeskError(Exception):
    """Zendesk API error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ZendeskClient:
    """Client for the Zendesk Support API, authenticated with an API token."""

    def __init__(
        self,
        subdomain: str,
        email: str,
        api_token: str,
        timeout: float = 30.0,
    ) -> None:
        self.subdomain = subdomain
        self.base_url = f"https://{subdomain}.zendesk.com/api/v2"
        self.auth = httpx.BasicAuth(f"{email}/token", api_token)
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", "Accept": "application/json"}

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(
                    method,
                    url,
                    params=params,
                    json=json_data,
                    headers=self.headers,
                    auth=self.auth,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="http_error").inc()
            logger.error(
                "zendesk_api_error method=%s path=%s status=%s body=%s",
                method,
                path,
                exc.response.status_code,
                (exc.response.text or "")[:500],
            )
            raise ZendeskError(
                f"Zendesk API error: {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="request_error").inc()
            logger.error("zendesk_request_error method=%s path=%s error=%s", method, path, exc)
            raise ZendeskError(f"Request failed: {exc}") from exc
        finally:
            PROVIDER_REQUEST_TIME.labels(provider=_PROVIDER).observe(time.monotonic() - started)

        PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="ok").inc()
        try:
            payload = response.json()
        except ValueError as exc:
            raise ZendeskError("Invalid JSON response from Zendesk", status_code=response.status_code) from exc
        return payload if isinstance(payload, dict) else {}

    def ticket_url(self, ticket_id: int | str) -> str:
        """Agent-facing URL for a ticket."""
        return f"https://{self.subdomain}.zendesk.com/agent/tickets/{ticket_id}"

    # ==================== Search ====================

    def search(
        self,
        query: str,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"query": query}
        if sort_by:
            params["sort_by"] = sort_by
        if sort_order:
            params["sort_order"] = sort_order
        result = self._request("GET", "/search.json", params=params)
        return [r for r in result.get("results") or [] if isinstance(r, dict)]

    # ==================== Tickets ====================

    def create_ticket(self, ticket: dict[str, Any]) -> dict[str, Any]:
        result = self._request("POST", "/tickets.json", json_data={"ticket": ticket})
        created = result.get("ticket")
        if not isinstance(created, dict) or created.get("id") is None:
            raise ZendeskError("Zendesk did not return a ticket id")
        return created

    def get_ticket(self, ticket_id: int | str) -> dict[str, Any]:
        result = self._request("GET", f"/tickets/{ticket_id}.json")
        return result.get("ticket") or {}

    # ==================== Comments ====================

    def add_comment(
        self,
        ticket_id: int | str,
        body: str,
        public: bool = True,
    ) -> int | None:
        """Append a comment to a ticket.

        Returns the new comment id when the ticket audit reports it.
        """
        result = self._request(
            "PUT",
            f"/tickets/{ticket_id}.json",
            json_data={"ticket": {"comment": {"body": body, "public": public}}},
        )
        events = (result.get("audit") or {}).get("events") or []
        for event in events:
            if isinstance(event, dict) and event.get("type") == "Comment":
                return event.get("id")
        return None

    def list_comments(self, ticket_id: int | str) -> list[dict[str, Any]]:
        result = self._request("GET", f"/tickets/{ticket_id}/comments.json")
        return [c for c in result.get("comments") or [] if isinstance(c, dict)]
