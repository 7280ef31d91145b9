from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    role: str | None = Field(default=None, max_length=40)


class TokenUser(BaseModel):
    id: str
    name: str


class TokenResponse(BaseModel):
    apiKey: str
    token: str
    user: TokenUser


class MarketplaceChannelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listing_id: str = Field(alias="listingId", min_length=1, max_length=100)
    buyer_id: str = Field(alias="buyerId", min_length=1, max_length=100)
    seller_id: str = Field(alias="sellerId", min_length=1, max_length=100)


class MarketplaceChannelResponse(BaseModel):
    channelId: str
    channelData: dict[str, Any]


class SupportEscalationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_channel_id: str = Field(alias="originalChannelId", min_length=1, max_length=200)
    customer_id: str = Field(alias="customerId", min_length=1, max_length=100)
    customer_email: str | None = Field(default=None, alias="customerEmail", max_length=255)
    conversation_summary: str | None = Field(default=None, alias="conversationSummary")


class SupportEscalationResponse(BaseModel):
    supportChannelId: str
    supportAgentId: str
    ticketId: int | None = None
    ticketUrl: str | None = None
