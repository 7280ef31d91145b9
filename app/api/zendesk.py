from fastapi import APIRouter, Query

from app.api.deps import get_settings, get_stream_client, get_zendesk_client
from app.schemas.zendesk import (
    ChannelEscalationRequest,
    ChannelEscalationResponse,
    ChatTicketRequest,
    ChatTicketResponse,
    CommentCreateRequest,
    CommentCreateResponse,
    CommentListResponse,
    ListingEscalationRequest,
    ListingEscalationResponse,
    TicketListResponse,
)
from app.services import comments as comments_service
from app.services import escalation as escalation_service
from app.services import tickets as tickets_service

router = APIRouter(prefix="/zendesk", tags=["zendesk"])

# Flat routes kept for clients of the first escalation flow.
legacy_router = APIRouter(tags=["zendesk"])


@router.post("/escalate", response_model=ChannelEscalationResponse)
def escalate_channel(payload: ChannelEscalationRequest):
    """Attach a support ticket to a marketplace channel, reusing an open one."""
    settings = get_settings()
    zendesk = get_zendesk_client()
    chat = get_stream_client()
    result = escalation_service.escalate_channel(
        chat,
        zendesk,
        settings,
        channel_id=payload.channel_id,
        buyer_id=payload.buyer_id,
        listing_id=payload.listing_id,
        seller_id=payload.seller_id,
    )
    return {
        "ticketId": result.ticket_id,
        "channelId": result.channel_id,
        "status": "ok",
        "isNew": result.is_new,
        "ticketUrl": result.ticket_url,
    }


@router.get("/tickets", response_model=TicketListResponse)
def list_tickets():
    zendesk = get_zendesk_client()
    return {"tickets": tickets_service.list_open_tickets(zendesk)}


@router.get("/messages", response_model=CommentListResponse)
def list_messages(ticket_id: str = Query(alias="ticketId", min_length=1, max_length=40, pattern=r"^\d+$")):
    zendesk = get_zendesk_client()
    return comments_service.list_ticket_comments(zendesk, ticket_id)


@router.post("/messages", response_model=CommentCreateResponse)
def post_message(payload: CommentCreateRequest):
    zendesk = get_zendesk_client()
    return comments_service.post_customer_comment(
        zendesk,
        payload.ticket_id,
        payload.message,
        customer_id=payload.customer_id,
        customer_name=payload.customer_name,
    )


@legacy_router.post("/zendesk-escalate", response_model=ListingEscalationResponse)
def escalate_listing(payload: ListingEscalationRequest):
    settings = get_settings()
    zendesk = get_zendesk_client()
    result = escalation_service.escalate_listing(
        zendesk,
        settings,
        listing_id=payload.listing_id,
        buyer_id=payload.buyer_id,
        seller_id=payload.seller_id,
    )
    return {
        "ok": True,
        "ticketId": result.ticket_id,
        "ticketUrl": result.ticket_url,
        "isNew": result.is_new,
        "message": "New support ticket created" if result.is_new else "Reusing existing support ticket",
    }


@legacy_router.post("/zendesk-ticket", response_model=ChatTicketResponse)
def create_chat_ticket(payload: ChatTicketRequest):
    settings = get_settings()
    zendesk = get_zendesk_client()
    return tickets_service.create_chat_ticket(
        zendesk,
        settings,
        channel_id=payload.channel_id,
        customer_id=payload.customer_id,
        listing_id=payload.listing_id,
    )
