"""Request and response bodies for the Cardknox boundary endpoints."""

from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class ConfigRequest(BaseModel):
    # Kept as a string so malformed ids get a dedicated 400 message.
    processor_id: str | None = None


class ConfigResponse(BaseModel):
    ifieldsKey: str
    softwareName: str
    softwareVersion: str


class CustomerBindRequest(BaseModel):
    processor_id: UUID
    person_id: UUID
    force_create: bool = False


class CustomerBindResponse(BaseModel):
    customer_id: UUID
    external_customer_id: str
    created: bool


class MethodSaveRequest(BaseModel):
    processor_id: UUID
    person_id: UUID
    token: str = Field(..., min_length=1)
    token_type: Literal["cc", "ach"] = "cc"
    exp: str | None = None
    last4: str = Field(..., min_length=1, max_length=4)
    brand: str | None = None
    label: str | None = None
    cardholder_name: str | None = None
    is_default: bool = False


class MethodSaveResponse(BaseModel):
    success: bool = True
    method_id: UUID
    external_token: str
    customer_id: UUID


class ChargeRequest(BaseModel):
    processor_id: UUID | None = None
    person_id: UUID | None = None
    method_id: UUID | None = None
    token: str | None = None
    amount: Decimal | None = None
    invoice_id: UUID | None = None
    campaign_id: UUID | None = None
    description: str | None = None
    idempotency_key: str | None = Field(default=None, max_length=255)


class ChargeResponse(BaseModel):
    success: bool
    status: str
    transaction_id: str | None = None
    payment_id: UUID | None = None
    message: str | None = None
    duplicate: bool | None = None
    error: str | None = None
    response_code: str | None = None
