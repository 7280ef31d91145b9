from fastapi import APIRouter

from app.api.deps import get_settings, get_stream_client, get_zendesk_client
from app.errors import ConfigurationError
from app.logging import get_logger
from app.schemas.chat import (
    MarketplaceChannelRequest,
    MarketplaceChannelResponse,
    SupportEscalationRequest,
    SupportEscalationResponse,
)
from app.services.channels import escalate_to_support_channel, provision_marketplace_channel

logger = get_logger(__name__)

router = APIRouter(prefix="/channels", tags=["chat"])


@router.post("/marketplace", response_model=MarketplaceChannelResponse)
def create_marketplace_channel(payload: MarketplaceChannelRequest):
    chat = get_stream_client()
    return provision_marketplace_channel(chat, payload.listing_id, payload.buyer_id, payload.seller_id)


@router.post("/escalate", response_model=SupportEscalationResponse)
def escalate_to_support(payload: SupportEscalationRequest):
    settings = get_settings()
    chat = get_stream_client()
    zendesk = None
    if payload.customer_email:
        try:
            zendesk = get_zendesk_client()
        except ConfigurationError:
            logger.warning("support_ticket_skipped reason=zendesk_not_configured")
    return escalate_to_support_channel(
        chat,
        zendesk,
        settings,
        original_channel_id=payload.original_channel_id,
        customer_id=payload.customer_id,
        customer_email=payload.customer_email,
        conversation_summary=payload.conversation_summary,
    )
