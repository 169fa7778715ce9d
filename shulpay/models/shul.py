from sqlalchemy import Column, DateTime, String, Text, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class Shul(Base):
    """Tenant: one synagogue with its own members, processors and invoices."""

    __tablename__ = "shuls"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=True)
    email = Column(String(255), nullable=True)
    logo_url = Column(String(2048), nullable=True)
    email_footer = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
