"""Chat session token issuing."""

from __future__ import annotations

from typing import Any

from app.errors import UpstreamError
from app.logging import get_logger
from app.services.stream_chat import StreamChatClient, StreamChatError

logger = get_logger(__name__)


def issue_token(
    chat: StreamChatClient,
    user_id: str,
    name: str,
    role: str | None = None,
) -> dict[str, Any]:
    """Upsert the user and mint a session token scoped to it."""
    user: dict[str, Any] = {"id": user_id, "name": name, "role": "user"}
    if role:
        user["marketplaceRole"] = role
    try:
        chat.upsert_user(user)
    except StreamChatError as exc:
        raise UpstreamError(
            "token_upsert_failed",
            f"Failed to generate token: {exc.message}",
            upstream_status=exc.status_code,
        ) from exc

    token = chat.create_user_token(user_id)
    logger.info("chat_token_issued user_id=%s", user_id)
    return {
        "apiKey": chat.api_key,
        "token": token,
        "user": {"id": user_id, "name": name},
    }
