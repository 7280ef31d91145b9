"""Escalation of marketplace chats to support tickets.

A chat is escalated by attaching a ticket id to its channel. Before creating a
ticket the ticketing provider is searched for an unsolved ticket carrying the
same identity tags (listing and buyer); a match is reused.

The search is the only deduplication. Two escalations racing before either
ticket exists can both miss it and create two tickets; that outcome is
accepted rather than serialising escalations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from app.config import Settings
from app.errors import ConfigurationError, UpstreamError
from app.logging import get_logger
from app.services.channels import CHANNEL_TYPE
from app.services.metrics import ESCALATIONS
from app.services.stream_chat import StreamChatClient, StreamChatError
from app.services.zendesk import ZendeskClient, ZendeskError
from app.telemetry import get_tracer

logger = get_logger(__name__)

UNSOLVED_STATUSES = frozenset({"new", "open", "pending", "hold"})


@dataclass(frozen=True)
class EscalationResult:
    ticket_id: int
    ticket_url: str
    is_new: bool
    channel_id: str | None = None


def make_tag(prefix: str, value: str) -> str:
    """Ticket tag for an identity key; tags are lowercase without whitespace."""
    return re.sub(r"\s+", "_", f"{prefix}_{value}".strip().lower())


def brand_tag(settings: Settings) -> str:
    return re.sub(r"[^a-z0-9_-]+", "", settings.marketplace_name.lower()) or "marketplace"


def build_search_query(tags: list[str]) -> str:
    parts = ["type:ticket", "status<solved"]
    parts.extend(f"tags:{tag}" for tag in tags)
    return " ".join(parts)


def _updated_at(ticket: dict[str, Any]) -> float:
    raw = ticket.get("updated_at") or ticket.get("created_at")
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return float("-inf")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp()
    return float("-inf")


def select_existing_ticket(results: list[dict[str, Any]], required_tags: list[str]) -> dict[str, Any] | None:
    """Pick the ticket to reuse from search results.

    Only unsolved tickets carrying every required tag qualify. Among those the
    most recently updated wins; provider order breaks ties.
    """
    required = {tag.lower() for tag in required_tags}
    candidates = []
    for ticket in results:
        if ticket.get("id") is None:
            continue
        if ticket.get("result_type", "ticket") != "ticket":
            continue
        status = str(ticket.get("status") or "open").lower()
        if status not in UNSOLVED_STATUSES:
            continue
        tags = {str(tag).lower() for tag in ticket.get("tags") or []}
        if not required.issubset(tags):
            continue
        candidates.append(ticket)
    if not candidates:
        return None
    # max() keeps the first of equal keys, so ties fall back to provider order.
    return max(candidates, key=_updated_at)


def find_existing_ticket(zendesk: ZendeskClient, tags: list[str]) -> dict[str, Any] | None:
    """Search for a reusable ticket; a failed search counts as no match."""
    query = build_search_query(tags)
    tracer = get_tracer(__name__)
    with tracer.start_as_current_span("escalation.ticket_search", attributes={"zendesk.query": query}) as span:
        try:
            results = zendesk.search(query, sort_by="updated_at", sort_order="desc")
        except ZendeskError as exc:
            span.set_attribute("zendesk.search_failed", True)
            logger.warning("ticket_search_failed query=%r status=%s error=%s", query, exc.status_code, exc.message)
            return None
        ticket = select_existing_ticket(results, tags)
        span.set_attribute("zendesk.results", len(results))
        span.set_attribute("escalation.reused", ticket is not None)
    logger.info("ticket_search_done query=%r results=%s reused=%s", query, len(results), ticket and ticket.get("id"))
    return ticket


def format_timestamp(raw: Any) -> str:
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
        except ValueError:
            return raw
    return "unknown time"


def format_transcript(messages: list[dict[str, Any]]) -> str:
    """Render chat messages as ``[timestamp] author: text`` lines."""
    lines = []
    for message in messages:
        user = message.get("user") or {}
        author = user.get("name") or user.get("id") or message.get("user_id") or "Unknown"
        text = message.get("text") or ""
        lines.append(f"[{format_timestamp(message.get('created_at'))}] {author}: {text}")
    return "\n".join(lines)


def channel_field_id_setting(settings: Settings) -> int | None:
    """Numeric id of the ticket field that stores the channel id, if configured."""
    raw = (settings.zendesk_channel_field_id or "").strip()
    if not raw:
        return None
    if not raw.isdigit():
        raise ConfigurationError(
            "channel_field_id_invalid",
            "ZENDESK_CHANNEL_FIELD_ID must be a numeric custom field id",
        )
    return int(raw)


def _create_ticket(zendesk: ZendeskClient, ticket: dict[str, Any], variant: str) -> int:
    try:
        created = zendesk.create_ticket(ticket)
    except ZendeskError as exc:
        ESCALATIONS.labels(variant=variant, outcome="failed").inc()
        raise UpstreamError(
            "ticket_create_failed",
            f"Failed to create Zendesk ticket: {exc.status_code or exc.message}",
            upstream_status=exc.status_code,
        ) from exc
    return created["id"]


def escalate_channel(
    chat: StreamChatClient,
    zendesk: ZendeskClient,
    settings: Settings,
    channel_id: str,
    buyer_id: str,
    listing_id: str,
    seller_id: str | None = None,
) -> EscalationResult:
    """Attach a support ticket to a marketplace channel.

    Reuses an unsolved ticket tagged for this listing and buyer, otherwise
    creates one seeded with the recent chat transcript. The ticket id is then
    written onto the channel's custom data.
    """
    channel_field_id = channel_field_id_setting(settings)
    try:
        state = chat.get_or_create_channel(
            CHANNEL_TYPE,
            channel_id,
            message_limit=settings.transcript_message_limit,
        )
    except StreamChatError as exc:
        ESCALATIONS.labels(variant="channel", outcome="failed").inc()
        raise UpstreamError(
            "escalation_channel_fetch_failed",
            "Failed to escalate to Zendesk",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    messages = (state.get("messages") or [])[-settings.transcript_message_limit :]
    seller_id = seller_id or (state.get("channel") or {}).get("sellerId")

    search_tags = [make_tag("listing", listing_id), make_tag("buyer", buyer_id)]
    existing = find_existing_ticket(zendesk, search_tags)

    if existing is not None:
        ticket_id = existing["id"]
        is_new = False
    else:
        description = [f"Customer {buyer_id} escalated chat from channel {channel_id}."]
        if seller_id:
            description.append(f"Seller: {seller_id}")
        description.append("Please review the conversation and assist the customer.")
        description.append(f"\nChat History:\n\n{format_transcript(messages)}")
        ticket: dict[str, Any] = {
            "subject": f"Escalated chat from {settings.marketplace_name} – listing {listing_id}",
            "comment": {"body": "\n".join(description)},
            "priority": "normal",
            "status": "open",
            "tags": [*search_tags, make_tag("channel", channel_id), brand_tag(settings), "marketplace"],
        }
        if channel_field_id is not None:
            ticket["custom_fields"] = [{"id": channel_field_id, "value": channel_id}]
        ticket_id = _create_ticket(zendesk, ticket, variant="channel")
        is_new = True

    try:
        chat.update_channel_partial(CHANNEL_TYPE, channel_id, set_fields={"ticketId": str(ticket_id)})
    except StreamChatError as exc:
        ESCALATIONS.labels(variant="channel", outcome="failed").inc()
        raise UpstreamError(
            "escalation_channel_update_failed",
            "Failed to escalate to Zendesk",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    if settings.support_agent_id:
        try:
            chat.add_members(CHANNEL_TYPE, channel_id, [settings.support_agent_id])
        except StreamChatError as exc:
            logger.warning(
                "support_agent_add_failed channel_id=%s agent_id=%s error=%s",
                channel_id,
                settings.support_agent_id,
                exc.message,
            )

    ESCALATIONS.labels(variant="channel", outcome="created" if is_new else "reused").inc()
    logger.info("channel_escalated channel_id=%s ticket_id=%s is_new=%s", channel_id, ticket_id, is_new)
    return EscalationResult(
        ticket_id=ticket_id,
        ticket_url=zendesk.ticket_url(ticket_id),
        is_new=is_new,
        channel_id=channel_id,
    )


def escalate_listing(
    zendesk: ZendeskClient,
    settings: Settings,
    listing_id: str,
    buyer_id: str,
    seller_id: str,
) -> EscalationResult:
    """Find or create the ticket for a listing/buyer/seller triple.

    Unlike :func:`escalate_channel` no chat channel is touched.
    """
    tags = [make_tag("listing", listing_id), make_tag("buyer", buyer_id), make_tag("seller", seller_id)]
    existing = find_existing_ticket(zendesk, tags)
    if existing is not None:
        ticket_id = existing["id"]
        ESCALATIONS.labels(variant="listing", outcome="reused").inc()
        logger.info("listing_escalation_reused listing_id=%s ticket_id=%s", listing_id, ticket_id)
        return EscalationResult(ticket_id=ticket_id, ticket_url=zendesk.ticket_url(ticket_id), is_new=False)

    ticket = {
        "subject": f"Escalated chat for listing {listing_id}",
        "comment": {
            "body": (
                f"Support escalation from {settings.marketplace_name} marketplace.\n\n"
                f"Listing ID: {listing_id}\nBuyer: {buyer_id}\nSeller: {seller_id}\n\n"
                "The buyer has requested support assistance with this transaction."
            )
        },
        "priority": "normal",
        "status": "open",
        "tags": [*tags, brand_tag(settings), "marketplace"],
    }
    ticket_id = _create_ticket(zendesk, ticket, variant="listing")
    ESCALATIONS.labels(variant="listing", outcome="created").inc()
    logger.info("listing_escalation_created listing_id=%s ticket_id=%s", listing_id, ticket_id)
    return EscalationResult(ticket_id=ticket_id, ticket_url=zendesk.ticket_url(ticket_id), is_new=True)
