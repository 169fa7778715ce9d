from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class WebhookEvent(Base):
    """Append-only log of inbound gateway postbacks."""

    __tablename__ = "payment_webhook_events"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    processor_id = Column(
        UUIDType, ForeignKey("payment_processors.id", ondelete="SET NULL"), nullable=True
    )
    event_type = Column(String(100), nullable=False, default="unknown")
    event_id = Column(String(100), nullable=True, index=True)
    payload = Column(JSON, nullable=False, default=dict)

    transaction_id = Column(
        UUIDType, ForeignKey("payment_transactions.id", ondelete="SET NULL"), nullable=True
    )
    payment_id = Column(UUIDType, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    process_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
