"""PaymentMethod model for tokenized, reusable payment credentials."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class PaymentMethodType(str, Enum):
    CARD = "card"
    ACH = "ach"


class PaymentMethod(Base):
    """Stores only gateway tokens and display metadata, never PAN or CVV."""

    __tablename__ = "payment_methods"

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
    customer_id = Column(
        UUIDType,
        ForeignKey("payment_customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Gateway handles
    external_token = Column(String(255), nullable=False)
    external_method_id = Column(String(255), nullable=True)

    type = Column(String(20), nullable=False, default=PaymentMethodType.CARD.value)
    brand = Column(String(50), nullable=True)
    last4 = Column(String(4), nullable=False)
    exp_month = Column(Integer, nullable=True)
    exp_year = Column(Integer, nullable=True)
    label = Column(String(255), nullable=True)
    cardholder_name = Column(String(255), nullable=True)

    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
