"""Pydantic schemas for mp_payments API."""

from typing import Literal

from pydantic import BaseModel, Field


class RegisterPayoutAccountRequest(BaseModel):
    country: str = Field("IN", min_length=2, max_length=2)
    email: str | None = Field(None, max_length=320)
    # Swap a connected account the gateway rejected for a new one.
    replace: bool = False


class PayoutAccountResponse(BaseModel):
    account_id: str
    onboarding_url: str | None
    created: bool


class CheckoutCompleteRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class WebhookAckResponse(BaseModel):
    received: bool = True
    event_type: str
    handled: bool


class CreateListingPaymentRequest(BaseModel):
    type: Literal["listing_fee", "featured_3_days", "featured_7_days"]
    product_id: str | None = Field(None, min_length=1, max_length=64)


class ListingPaymentResponse(BaseModel):
    id: str
    type: str
    product_id: str | None
    amount: int
    currency: str
    status: str
    session_id: str | None
    checkout_url: str | None
    replayed: bool
