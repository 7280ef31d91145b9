"""Marketplace and support channel provisioning.

Channel ids are derived from business keys so the buyer and seller apps reach
the same channel without a shared lookup table.
"""

from __future__ import annotations

from typing import Any

from app.config import Settings
from app.errors import UpstreamError
from app.logging import get_logger
from app.services.stream_chat import StreamChatClient, StreamChatError
from app.services.zendesk import ZendeskClient, ZendeskError

logger = get_logger(__name__)

CHANNEL_TYPE = "messaging"
CHANNEL_DATA_KEYS = ("listingId", "buyerId", "sellerId", "ticketId")


def marketplace_channel_id(listing_id: str, buyer_id: str) -> str:
    """Channel id for a buyer's conversation about a listing.

    A listing has a single seller, so the seller id does not take part in the id.
    """
    return f"marketplace-{listing_id}-{buyer_id}"


def support_channel_id(original_channel_id: str) -> str:
    return f"support-{original_channel_id}"


def channel_member_ids(state: dict[str, Any]) -> set[str]:
    members = state.get("members") or (state.get("channel") or {}).get("members") or []
    ids: set[str] = set()
    for member in members:
        if not isinstance(member, dict):
            continue
        user_id = member.get("user_id") or (member.get("user") or {}).get("id")
        if user_id:
            ids.add(str(user_id))
    return ids


def channel_data(state: dict[str, Any]) -> dict[str, Any]:
    """Custom marketplace fields stored on a channel."""
    channel = state.get("channel") or {}
    return {key: channel.get(key) for key in CHANNEL_DATA_KEYS}


def _ensure_members(chat: StreamChatClient, channel_id: str, state: dict[str, Any], user_ids: list[str]) -> None:
    current = channel_member_ids(state)
    missing = [user_id for user_id in user_ids if user_id not in current]
    if missing:
        chat.add_members(CHANNEL_TYPE, channel_id, missing)
        logger.info("channel_members_added channel_id=%s members=%s", channel_id, ",".join(missing))


def provision_marketplace_channel(
    chat: StreamChatClient,
    listing_id: str,
    buyer_id: str,
    seller_id: str,
) -> dict[str, Any]:
    channel_id = marketplace_channel_id(listing_id, buyer_id)
    try:
        chat.upsert_users(
            [
                {"id": buyer_id, "name": f"Buyer {buyer_id}", "role": "user", "marketplaceRole": "buyer"},
                {"id": seller_id, "name": f"Seller {seller_id}", "role": "user", "marketplaceRole": "seller"},
            ]
        )
        state = chat.get_or_create_channel(
            CHANNEL_TYPE,
            channel_id,
            data={
                "name": f"Listing #{listing_id}",
                "members": [buyer_id, seller_id],
                "created_by_id": buyer_id,
                "listingId": listing_id,
                "buyerId": buyer_id,
                "sellerId": seller_id,
                "ticketId": None,
            },
        )
        _ensure_members(chat, channel_id, state, [buyer_id, seller_id])
    except StreamChatError as exc:
        raise UpstreamError(
            "channel_provision_failed",
            "Failed to create marketplace channel",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    data = channel_data(state)
    # Freshly created channels may echo no custom data; report what was seeded.
    data["listingId"] = data.get("listingId") or listing_id
    data["buyerId"] = data.get("buyerId") or buyer_id
    data["sellerId"] = data.get("sellerId") or seller_id
    logger.info("marketplace_channel_ready channel_id=%s ticket_id=%s", channel_id, data.get("ticketId"))
    return {"channelId": channel_id, "channelData": data}


def _create_support_ticket(
    zendesk: ZendeskClient,
    settings: Settings,
    original_channel_id: str,
    customer_id: str,
    customer_email: str,
    summary: str | None,
) -> tuple[int | None, str | None]:
    description = summary or (
        f"Customer {customer_id} has requested support for their marketplace conversation.\n\n"
        f"Channel ID: {original_channel_id}"
    )
    try:
        ticket = zendesk.create_ticket(
            {
                "subject": f"{settings.marketplace_name} Support Request - Order {original_channel_id}",
                "comment": {"body": description},
                "requester": {"email": customer_email, "name": f"Customer {customer_id}"},
                "priority": "normal",
            }
        )
    except ZendeskError as exc:
        logger.warning(
            "support_ticket_create_failed channel_id=%s status=%s error=%s",
            original_channel_id,
            exc.status_code,
            exc.message,
        )
        return None, None
    ticket_id = ticket["id"]
    logger.info("support_ticket_created channel_id=%s ticket_id=%s", original_channel_id, ticket_id)
    return ticket_id, zendesk.ticket_url(ticket_id)


def escalate_to_support_channel(
    chat: StreamChatClient,
    zendesk: ZendeskClient | None,
    settings: Settings,
    original_channel_id: str,
    customer_id: str,
    customer_email: str | None = None,
    conversation_summary: str | None = None,
) -> dict[str, Any]:
    """Move a conversation into a dedicated support channel.

    The ticket is best effort: without an email or a ticketing client, or when
    the provider rejects it, the support channel is still created.
    """
    ticket_id: int | None = None
    ticket_url: str | None = None
    if customer_email and zendesk is not None:
        ticket_id, ticket_url = _create_support_ticket(
            zendesk, settings, original_channel_id, customer_id, customer_email, conversation_summary
        )

    agent_id = settings.support_agent_id or settings.support_fallback_agent_id
    channel_id = support_channel_id(original_channel_id)
    try:
        chat.upsert_users(
            [
                {"id": customer_id, "name": f"Customer {customer_id}", "role": "user"},
                {"id": agent_id, "name": settings.support_agent_name, "role": "admin"},
            ]
        )
        state = chat.get_or_create_channel(
            CHANNEL_TYPE,
            channel_id,
            data={
                "name": "Support Channel",
                "members": [customer_id, agent_id],
                "created_by_id": customer_id,
                "originalChannelId": original_channel_id,
                "ticketId": str(ticket_id) if ticket_id is not None else None,
            },
        )
        _ensure_members(chat, channel_id, state, [customer_id, agent_id])
        chat.send_message(
            CHANNEL_TYPE,
            channel_id,
            text=_escalation_notice(original_channel_id, customer_id, ticket_id, ticket_url),
            user_id=agent_id,
        )
    except StreamChatError as exc:
        raise UpstreamError(
            "support_escalation_failed",
            "Failed to escalate to support",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    logger.info("support_channel_ready channel_id=%s agent_id=%s ticket_id=%s", channel_id, agent_id, ticket_id)
    return {
        "supportChannelId": channel_id,
        "supportAgentId": agent_id,
        "ticketId": ticket_id,
        "ticketUrl": ticket_url,
    }


def _escalation_notice(
    original_channel_id: str,
    customer_id: str,
    ticket_id: int | None,
    ticket_url: str | None,
) -> str:
    if ticket_id is not None:
        return (
            f"Escalated from channel {original_channel_id} for customer {customer_id}.\n\n"
            f"Support ticket #{ticket_id} created.\nTicket URL: {ticket_url}"
        )
    return (
        "This conversation has been escalated to support.\n\n"
        f"Original channel: {original_channel_id}\nCustomer: {customer_id}\n\n"
        "A support agent will assist you shortly."
    )
