"""Stream Chat server-side REST client."""

from __future__ import annotations

import time
from typing import Any

import httpx
from jose import jwt

from app.logging import get_logger
from app.services.metrics import PROVIDER_REQUEST_TIME, PROVIDER_REQUESTS

logger = get_logger(__name__)

_PROVIDER = "stream"


class StreamChatError(Exception):
    """Stream Chat API error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StreamChatClient:
    """Server-side client for the Stream Chat REST API.

    Requests are signed with a server token derived from the API secret.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://chat.stream-io-api.com",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _server_token(self) -> str:
        return jwt.encode({"server": True}, self.api_secret, algorithm="HS256")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self._server_token(),
            "stream-auth-type": "jwt",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        params = dict(params or {})
        params["api_key"] = self.api_key
        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(
                    method,
                    url,
                    params=params,
                    json=json_data,
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="http_error").inc()
            message = _error_message(exc.response)
            logger.error(
                "stream_api_error method=%s path=%s status=%s message=%s",
                method,
                path,
                exc.response.status_code,
                message,
            )
            raise StreamChatError(
                f"Stream API error {exc.response.status_code}: {message}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="request_error").inc()
            logger.error("stream_request_error method=%s path=%s error=%s", method, path, exc)
            raise StreamChatError(f"Request failed: {exc}") from exc
        finally:
            PROVIDER_REQUEST_TIME.labels(provider=_PROVIDER).observe(time.monotonic() - started)

        PROVIDER_REQUESTS.labels(provider=_PROVIDER, status="ok").inc()
        try:
            payload = response.json()
        except ValueError as exc:
            raise StreamChatError("Invalid JSON response from Stream", status_code=response.status_code) from exc
        return payload if isinstance(payload, dict) else {"data": payload}

    # ==================== Users ====================

    def create_user_token(self, user_id: str, exp: int | None = None) -> str:
        """Mint a client session token scoped to ``user_id``."""
        claims: dict[str, Any] = {"user_id": user_id}
        if exp is not None:
            claims["exp"] = exp
        return jwt.encode(claims, self.api_secret, algorithm="HS256")

    def upsert_users(self, users: list[dict[str, Any]]) -> dict[str, Any]:
        """Create or update users; each dict needs at least an ``id``."""
        result = self._request(
            "POST",
            "/users",
            json_data={"users": {user["id"]: user for user in users}},
        )
        return result.get("users", {})

    def upsert_user(self, user: dict[str, Any]) -> dict[str, Any]:
        users = self.upsert_users([user])
        return users.get(user["id"], user)

    # ==================== Channels ====================

    def get_or_create_channel(
        self,
        channel_type: str,
        channel_id: str,
        data: dict[str, Any] | None = None,
        message_limit: int | None = None,
    ) -> dict[str, Any]:
        """Query a channel, creating it with ``data`` when it does not exist.

        Returns the raw channel state: ``channel``, ``members`` and ``messages``.
        """
        body: dict[str, Any] = {"state": True, "watch": False, "presence": False}
        if data:
            body["data"] = data
        if message_limit is not None:
            body["messages"] = {"limit": int(message_limit)}
        return self._request("POST", f"/channels/{channel_type}/{channel_id}/query", json_data=body)

    def add_members(self, channel_type: str, channel_id: str, user_ids: list[str]) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/channels/{channel_type}/{channel_id}",
            json_data={"add_members": list(user_ids)},
        )

    def update_channel_partial(
        self,
        channel_type: str,
        channel_id: str,
        set_fields: dict[str, Any] | None = None,
        unset_fields: list[str] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"set": set_fields or {}, "unset": unset_fields or []}
        return self._request("PATCH", f"/channels/{channel_type}/{channel_id}", json_data=body)

    def query_channels(
        self,
        filter_conditions: dict[str, Any],
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Return channel states matching ``filter_conditions``."""
        result = self._request(
            "POST",
            "/channels",
            json_data={
                "filter_conditions": filter_conditions,
                "sort": [],
                "limit": int(limit),
                "state": True,
                "watch": False,
                "presence": False,
            },
        )
        channels = result.get("channels") or []
        return [c for c in channels if isinstance(c, dict)]

    # ==================== Messages ====================

    def send_message(
        self,
        channel_type: str,
        channel_id: str,
        text: str,
        user_id: str,
    ) -> dict[str, Any]:
        result = self._request(
            "POST",
            f"/channels/{channel_type}/{channel_id}/message",
            json_data={"message": {"text": text, "user_id": user_id}},
        )
        return result.get("message") or {}


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or "")[:500]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return (response.text or "")[:500]
