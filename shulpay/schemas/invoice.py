"""Pydantic schemas for invoices."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceLineItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal = Field(..., ge=0)
    amount: Decimal = Field(..., ge=0)


class InvoiceEmailRequest(BaseModel):
    invoiceId: UUID


class InvoiceEmailResponse(BaseModel):
    success: bool
    id: str | None = None
