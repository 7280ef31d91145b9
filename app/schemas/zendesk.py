from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChannelEscalationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(alias="channelId", min_length=1, max_length=200)
    buyer_id: str = Field(alias="buyerId", min_length=1, max_length=100)
    listing_id: str = Field(alias="listingId", min_length=1, max_length=100)
    seller_id: str | None = Field(default=None, alias="sellerId", max_length=100)


class ChannelEscalationResponse(BaseModel):
    ticketId: int
    channelId: str
    status: str = "ok"
    isNew: bool
    ticketUrl: str


class ListingEscalationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listing_id: str = Field(alias="listingId", min_length=1, max_length=100)
    buyer_id: str = Field(alias="buyerId", min_length=1, max_length=100)
    seller_id: str = Field(alias="sellerId", min_length=1, max_length=100)


class ListingEscalationResponse(BaseModel):
    ok: bool = True
    ticketId: int
    ticketUrl: str
    isNew: bool
    message: str


class ChatTicketRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(alias="channelId", min_length=1, max_length=200)
    customer_id: str = Field(alias="customerId", min_length=1, max_length=100)
    listing_id: str = Field(alias="listingId", min_length=1, max_length=100)


class ChatTicketResponse(BaseModel):
    ok: bool = True
    ticketId: int
    ticketUrl: str
    message: str


class TicketSummary(BaseModel):
    id: int
    subject: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    url: str


class TicketListResponse(BaseModel):
    tickets: list[TicketSummary]


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    ticket_id: str = Field(alias="ticketId", min_length=1, max_length=40, pattern=r"^\d+$")
    message: str = Field(min_length=1)
    customer_id: str | None = Field(default=None, alias="customerId", max_length=100)
    customer_name: str | None = Field(default=None, alias="customerName", max_length=100)


class CommentCreateResponse(BaseModel):
    success: bool = True
    commentId: int | None = None


class CommentListResponse(BaseModel):
    comments: list[dict[str, Any]]
    requesterId: int | None = None


class TicketWebhookPayload(BaseModel):
    """Body of the ticket-comment webhook; fields are checked by the handler."""

    model_config = ConfigDict(extra="ignore")

    ticket_id: int | str | None = None
    comment_body: str | None = None
    author_name: str | None = None
    author_id: int | str | None = None
