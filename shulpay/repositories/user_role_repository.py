"""Repository for UserRole lookups."""

from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.user_role import UserRole


class UserRoleRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_role(self, user_id: UUID, shul_id: UUID) -> str | None:
        row = (
            self.db.query(UserRole)
            .filter(UserRole.user_id == user_id, UserRole.shul_id == shul_id)
            .first()
        )
        return str(row.role) if row else None

    def create(self, user_id: UUID, shul_id: UUID, role: str = "admin") -> UserRole:
        user_role = UserRole(user_id=user_id, shul_id=shul_id, role=role)
        self.db.add(user_role)
        self.db.commit()
        self.db.refresh(user_role)
        return user_role
