"""Payment processor (gateway account) models."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class ProcessorType(str, Enum):
    """Supported gateway types."""

    CARDKNOX = "cardknox"


class Processor(Base):
    """A tenant-scoped gateway account.

    At most one active processor per shul carries ``is_default``.
    """

    __tablename__ = "payment_processors"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default=ProcessorType.CARDKNOX.value)
    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ProcessorCredentials(Base):
    """Secret material for a processor. Only ``ifields_key`` ever leaves the server."""

    __tablename__ = "payment_processor_credentials"

    processor_id = Column(
        UUIDType,
        ForeignKey("payment_processors.id", ondelete="CASCADE"),
        primary_key=True,
    )
    transaction_key = Column(String(255), nullable=True)
    recurring_key = Column(String(255), nullable=True)
    ifields_key = Column(String(255), nullable=True)
    software_name = Column(String(100), nullable=True)
    software_version = Column(String(50), nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def recurring_api_key(self) -> str | None:
        """Key for the customer/method API; falls back to the transaction key."""
        return self.recurring_key or self.transaction_key
