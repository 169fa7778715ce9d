"""Payment model: ledger entry for a settled, approved charge."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    person_id = Column(UUIDType, ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    processor_id = Column(
        UUIDType, ForeignKey("payment_processors.id", ondelete="SET NULL"), nullable=True
    )
    invoice_id = Column(UUIDType, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)
    campaign_id = Column(UUIDType, nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    processor_fee = Column(Numeric(12, 2), nullable=False, default=0)
    method = Column(String(20), nullable=False, default="card")
    payment_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)

    # External transaction reference (xRefNum)
    transaction_id = Column(String(100), nullable=True, index=True)
    idempotency_key = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    reconciled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
