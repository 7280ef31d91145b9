"""Relay of ticket comments from the ticketing webhook into chat channels."""

from __future__ import annotations

import secrets
from typing import Any

from app.config import Settings
from app.errors import ConfigurationError, WebhookAuthError
from app.logging import get_logger
from app.services.channels import CHANNEL_TYPE
from app.services.stream_chat import StreamChatClient

logger = get_logger(__name__)

WEBHOOK_SECRET_HEADER = "x-zendesk-webhook-secret"


def verify_webhook_secret(settings: Settings, provided: str | None) -> None:
    """Reject the delivery unless the shared secret matches exactly."""
    expected = settings.zendesk_webhook_secret
    if not expected:
        raise ConfigurationError("webhook_not_configured", "Webhook not configured")
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise WebhookAuthError()


def find_channel_for_ticket(chat: StreamChatClient, ticket_id: int | str) -> dict[str, Any] | None:
    channels = chat.query_channels({"ticketId": str(ticket_id)}, limit=1)
    if not channels:
        return None
    return channels[0].get("channel") or channels[0]


def relay_comment(
    chat: StreamChatClient,
    settings: Settings,
    ticket_id: int | str,
    comment_body: str,
    author_name: str | None = None,
) -> dict[str, Any]:
    """Post an agent comment into the channel linked to ``ticket_id``.

    A ticket with no linked channel is acknowledged as a no-op.
    """
    agent_id = settings.support_agent_id
    if not agent_id:
        raise ConfigurationError("support_agent_not_configured", "Support agent not configured")

    channel = find_channel_for_ticket(chat, ticket_id)
    if channel is None:
        logger.info("webhook_no_channel ticket_id=%s", ticket_id)
        return {"status": "ok", "message": "No matching channel found"}

    channel_id = channel.get("id")
    channel_type = channel.get("type") or CHANNEL_TYPE
    chat.send_message(channel_type, channel_id, text=comment_body, user_id=agent_id)
    logger.info("webhook_comment_relayed ticket_id=%s channel_id=%s author=%s", ticket_id, channel_id, author_name)
    return {"status": "ok", "channelId": channel_id, "ticketId": ticket_id}
