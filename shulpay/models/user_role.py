from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func

from shulpay.core.database import Base
from shulpay.models.shared import UUIDType, generate_uuid


class UserRole(Base):
    """Grants an auth-backend user a role inside one shul."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "shul_id", name="uq_user_roles_user_shul"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(UUIDType, nullable=False, index=True)
    shul_id = Column(
        UUIDType, ForeignKey("shuls.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(50), nullable=False, default="admin")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
