from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class PaymentCustomer(Base):
    """Binds a member to exactly one gateway customer per processor."""

    __tablename__ = "payment_customers"
    __table_args__ = (
        UniqueConstraint("person_id", "processor_id", name="uq_payment_customers_person_processor"),
    )

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
    external_customer_id = Column(String(255), nullable=False, index=True)
    external_customer_number = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=True)
    sync_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
