"""PaymentTransaction model: the attempt log for every gateway charge."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
    text,
)

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class TransactionStatus(str, Enum):
    PROCESSING = "processing"
    APPROVED = "approved"
    DECLINED = "declined"
    ERROR = "error"


TERMINAL_STATUSES = frozenset(
    {
        TransactionStatus.APPROVED.value,
        TransactionStatus.DECLINED.value,
        TransactionStatus.ERROR.value,
    }
)

# Attempts that hold an idempotency key: at most one in flight or approved.
LIVE_KEY_CONDITION = "status IN ('processing', 'approved') AND idempotency_key IS NOT NULL"


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    __table_args__ = (
        Index(
            "uq_payment_transactions_live_idempotency_key",
            "shul_id",
            "idempotency_key",
            unique=True,
            sqlite_where=text(LIVE_KEY_CONDITION),
            postgresql_where=text(LIVE_KEY_CONDITION),
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    person_id = Column(UUIDType, ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    processor_id = Column(
        UUIDType, ForeignKey("payment_processors.id", ondelete="SET NULL"), nullable=True
    )
    payment_id = Column(UUIDType, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    invoice_id = Column(UUIDType, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)
    schedule_id = Column(
        UUIDType, ForeignKey("payment_schedules.id", ondelete="SET NULL"), nullable=True
    )
    payment_method_id = Column(
        UUIDType, ForeignKey("payment_methods.id", ondelete="SET NULL"), nullable=True
    )

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=TransactionStatus.PROCESSING.value)
    idempotency_key = Column(String(255), nullable=True, index=True)

    # Gateway diagnostics
    external_transaction_id = Column(String(100), nullable=True, index=True)
    external_batch_id = Column(String(100), nullable=True)
    response_code = Column(String(50), nullable=True)
    response_message = Column(Text, nullable=True)
    avs_result = Column(String(50), nullable=True)
    cvv_result = Column(String(50), nullable=True)
    card_brand = Column(String(50), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    processor_fee = Column(Numeric(12, 2), nullable=True)

    # Redacted request (credentials and token stripped) and raw gateway reply
    request_payload = Column(JSON, nullable=True)
    response_payload = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
