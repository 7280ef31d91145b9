"""Inbound webhook from the ticketing provider.

Deliveries are at-least-once, so every authenticated delivery is acknowledged
with 200, including ones that fail internally; otherwise the provider keeps
redelivering.
"""

from fastapi import APIRouter, Header, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_settings, get_stream_client
from app.errors import ServiceError, WebhookAuthError
from app.logging import get_logger
from app.schemas.zendesk import TicketWebhookPayload
from app.services.metrics import WEBHOOK_EVENTS
from app.services.webhook_relay import WEBHOOK_SECRET_HEADER, relay_comment, verify_webhook_secret

logger = get_logger(__name__)

router = APIRouter(prefix="/zendesk", tags=["zendesk-webhooks"])


@router.post("/webhook")
async def ticket_comment_webhook(
    request: Request,
    webhook_secret: str | None = Header(default=None, alias=WEBHOOK_SECRET_HEADER),
):
    settings = get_settings()
    try:
        verify_webhook_secret(settings, webhook_secret)
    except WebhookAuthError:
        WEBHOOK_EVENTS.labels(status="unauthorized").inc()
        logger.warning("ticket_webhook_rejected reason=invalid_secret")
        raise

    try:
        payload = TicketWebhookPayload.model_validate(await request.json())
    except (ValueError, ValidationError):
        WEBHOOK_EVENTS.labels(status="ignored").inc()
        logger.warning("ticket_webhook_ignored reason=invalid_body")
        return {"status": "ignored", "message": "Invalid payload"}

    if payload.ticket_id in (None, "") or not payload.comment_body:
        WEBHOOK_EVENTS.labels(status="ignored").inc()
        logger.warning("ticket_webhook_ignored reason=missing_fields ticket_id=%s", payload.ticket_id)
        return {"status": "ignored", "message": "Missing required fields"}

    logger.info("ticket_webhook_received ticket_id=%s", payload.ticket_id)
    try:
        chat = get_stream_client()
        result = await run_in_threadpool(
            relay_comment,
            chat,
            settings,
            payload.ticket_id,
            payload.comment_body,
            payload.author_name,
        )
    except Exception as exc:
        WEBHOOK_EVENTS.labels(status="error").inc()
        logger.exception("ticket_webhook_failed ticket_id=%s", payload.ticket_id)
        message = exc.detail if isinstance(exc, ServiceError) else (str(exc) or "Unknown error")
        return {"status": "error", "message": message}

    WEBHOOK_EVENTS.labels(status="relayed" if result.get("channelId") else "no_channel").inc()
    return result
