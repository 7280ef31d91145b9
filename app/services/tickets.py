"""Support ticket listing and direct creation."""

from __future__ import annotations

from typing import Any

from app.config import Settings
from app.errors import UpstreamError
from app.logging import get_logger
from app.services.escalation import brand_tag
from app.services.zendesk import ZendeskClient, ZendeskError

logger = get_logger(__name__)

OPEN_TICKETS_QUERY = "type:ticket status<solved"


def summarize_ticket(zendesk: ZendeskClient, ticket: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": ticket.get("id"),
        "subject": ticket.get("subject"),
        "description": ticket.get("description"),
        "status": ticket.get("status"),
        "priority": ticket.get("priority"),
        "created_at": ticket.get("created_at"),
        "updated_at": ticket.get("updated_at"),
        "url": zendesk.ticket_url(ticket.get("id")),
    }


def list_open_tickets(zendesk: ZendeskClient) -> list[dict[str, Any]]:
    try:
        results = zendesk.search(OPEN_TICKETS_QUERY)
    except ZendeskError as exc:
        raise UpstreamError(
            "ticket_list_failed",
            f"Zendesk API error: {exc.status_code}" if exc.status_code else "Failed to fetch tickets",
            upstream_status=exc.status_code,
        ) from exc
    return [summarize_ticket(zendesk, ticket) for ticket in results if ticket.get("id") is not None]


def create_chat_ticket(
    zendesk: ZendeskClient,
    settings: Settings,
    channel_id: str,
    customer_id: str,
    listing_id: str,
) -> dict[str, Any]:
    """Open a ticket for a chat without looking for an existing one."""
    try:
        ticket = zendesk.create_ticket(
            {
                "subject": f"Escalated chat from {settings.marketplace_name} – listing {listing_id}",
                "comment": {
                    "body": (
                        f"Customer {customer_id} escalated chat from channel {channel_id}. "
                        "Please review the conversation and assist the customer."
                    )
                },
                "priority": "normal",
                "tags": [brand_tag(settings), "chat-escalation", "marketplace"],
            }
        )
    except ZendeskError as exc:
        raise UpstreamError(
            "ticket_create_failed",
            f"Zendesk API error: {exc.status_code}" if exc.status_code else "Failed to create Zendesk ticket",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    ticket_id = ticket["id"]
    logger.info("chat_ticket_created channel_id=%s ticket_id=%s", channel_id, ticket_id)
    return {
        "ok": True,
        "ticketId": ticket_id,
        "ticketUrl": zendesk.ticket_url(ticket_id),
        "message": "Zendesk ticket created successfully",
    }
