"""Pydantic schemas for recurring payment schedules."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from shulpay.models.payment_schedule import ScheduleFrequency, ScheduleStatus


class ScheduleCreate(BaseModel):
    person_id: UUID
    processor_id: UUID
    payment_method_id: UUID | None = None
    campaign_id: UUID | None = None
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: str | None = Field(default=None, max_length=255)
    frequency: ScheduleFrequency = ScheduleFrequency.MONTHLY
    start_date: date
    end_date: date | None = None
    total_payments: int | None = Field(default=None, ge=1)


class ScheduleStatusUpdate(BaseModel):
    status: ScheduleStatus


class ScheduleResponse(BaseModel):
    id: UUID
    shul_id: UUID
    person_id: UUID
    processor_id: UUID
    payment_method_id: UUID | None = None
    campaign_id: UUID | None = None
    amount: Decimal
    currency: str
    description: str | None = None
    frequency: str
    start_date: date
    next_run_date: date
    end_date: date | None = None
    total_payments: int | None = None
    payments_made: int
    status: str
    last_error: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ScheduleRunError(BaseModel):
    id: UUID
    error: str


class RecurringBillingResult(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[ScheduleRunError] = Field(default_factory=list)
