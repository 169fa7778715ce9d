from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    PARTIAL = "partial"
    PAID = "paid"
    VOID = "void"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("shul_id", "invoice_number", name="uq_invoices_shul_number"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    member_id = Column(UUIDType, ForeignKey("people.id", ondelete="RESTRICT"), nullable=True)
    campaign_id = Column(UUIDType, nullable=True)
    schedule_id = Column(
        UUIDType, ForeignKey("payment_schedules.id", ondelete="SET NULL"), nullable=True
    )
    invoice_number = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value)

    # Amounts
    total = Column(Numeric(12, 2), nullable=False, default=0)
    balance = Column(Numeric(12, 2), nullable=True)

    # Line items stored as JSON array of {description, quantity, unit_price, amount}
    line_items = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    # Dates
    due_date = Column(Date, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
