"""Pydantic schemas for payment processors."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from shulpay.models.processor import ProcessorType


class ProcessorCredentialsInput(BaseModel):
    transaction_key: str | None = Field(default=None, max_length=255)
    recurring_key: str | None = Field(default=None, max_length=255)
    ifields_key: str | None = Field(default=None, max_length=255)
    software_name: str | None = Field(default=None, max_length=100)
    software_version: str | None = Field(default=None, max_length=50)


class ProcessorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ProcessorType = ProcessorType.CARDKNOX
    is_active: bool = True
    is_default: bool = False
    credentials: ProcessorCredentialsInput | None = None


class ProcessorUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None
    is_default: bool | None = None
    credentials: ProcessorCredentialsInput | None = None


class ProcessorResponse(BaseModel):
    id: UUID
    shul_id: UUID
    name: str
    type: str
    is_active: bool
    is_default: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
