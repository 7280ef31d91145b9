"""Customer comments on support tickets.

The ticket comment list does not say which comments the customer typed through
the chat UI, so outbound comments carry a ``[name]: `` body prefix. The prefix
is a display convention only: agents can type the same text, and nothing on
the provider side enforces it.
"""

from __future__ import annotations

import re
from typing import Any

from app.errors import UpstreamError
from app.logging import get_logger
from app.services.zendesk import ZendeskClient, ZendeskError

logger = get_logger(__name__)

_AUTHOR_PREFIX_RE = re.compile(r"^\[(?P<name>[^\[\]\n]{1,100})\]: ?(?P<text>.*)\Z", re.DOTALL)


def with_author_prefix(message: str, author_name: str | None) -> str:
    if not author_name:
        return message
    return f"[{author_name}]: {message}"


def split_author_prefix(body: str | None) -> tuple[str | None, str]:
    """Return ``(author_name, text)``; author is None when no prefix is present."""
    if not body:
        return None, body or ""
    match = _AUTHOR_PREFIX_RE.match(body)
    if not match:
        return None, body
    return match.group("name"), match.group("text")


def post_customer_comment(
    zendesk: ZendeskClient,
    ticket_id: str,
    message: str,
    customer_id: str | None = None,
    customer_name: str | None = None,
) -> dict[str, Any]:
    body = with_author_prefix(message, customer_name)
    try:
        comment_id = zendesk.add_comment(ticket_id, body, public=True)
    except ZendeskError as exc:
        raise UpstreamError(
            "comment_post_failed",
            "Failed to send message",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc
    logger.info("ticket_comment_posted ticket_id=%s customer_id=%s comment_id=%s", ticket_id, customer_id, comment_id)
    return {"success": True, "commentId": comment_id}


def list_ticket_comments(zendesk: ZendeskClient, ticket_id: str) -> dict[str, Any]:
    try:
        comments = zendesk.list_comments(ticket_id)
    except ZendeskError as exc:
        raise UpstreamError(
            "comment_list_failed",
            "Failed to fetch messages",
            upstream_status=exc.status_code,
            details=exc.message,
        ) from exc

    requester_id = None
    try:
        requester_id = zendesk.get_ticket(ticket_id).get("requester_id")
    except ZendeskError as exc:
        logger.warning("ticket_requester_lookup_failed ticket_id=%s error=%s", ticket_id, exc.message)

    enriched = []
    for comment in comments:
        author, _ = split_author_prefix(comment.get("body"))
        enriched.append({**comment, "attributedAuthor": author})
    return {"comments": enriched, "requesterId": requester_id}
