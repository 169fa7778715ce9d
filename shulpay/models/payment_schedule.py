"""PaymentSchedule model for recurring billing instructions."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class ScheduleFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUALLY = "annually"


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentSchedule(Base):
    __tablename__ = "payment_schedules"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    person_id = Column(
        UUIDType, ForeignKey("people.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    processor_id = Column(
        UUIDType,
        ForeignKey("payment_processors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    payment_method_id = Column(
        UUIDType, ForeignKey("payment_methods.id", ondelete="RESTRICT"), nullable=True
    )
    campaign_id = Column(UUIDType, nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(String(255), nullable=True)
    frequency = Column(String(20), nullable=False, default=ScheduleFrequency.MONTHLY.value)

    start_date = Column(Date, nullable=False)
    next_run_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    total_payments = Column(Integer, nullable=True)
    payments_made = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=ScheduleStatus.ACTIVE.value, index=True)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
