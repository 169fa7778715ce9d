from sqlalchemy import Column, DateTime, ForeignKey, String, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class Member(Base):
    __tablename__ = "people"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    zip = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
