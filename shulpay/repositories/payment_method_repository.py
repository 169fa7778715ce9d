"""Repository for PaymentMethod operations."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.payment_method import PaymentMethod


class PaymentMethodRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, method_id: UUID, shul_id: UUID | None = None) -> PaymentMethod | None:
        query = self.db.query(PaymentMethod).filter(PaymentMethod.id == method_id)
        if shul_id is not None:
            query = query.filter(PaymentMethod.shul_id == shul_id)
        return query.first()

    def get_active(self, method_id: UUID) -> PaymentMethod | None:
        return (
            self.db.query(PaymentMethod)
            .filter(
                PaymentMethod.id == method_id,
                PaymentMethod.is_active == True,  # noqa: E712
            )
            .first()
        )

    def get_for_person(
        self, person_id: UUID, processor_id: UUID, active_only: bool = True
    ) -> list[PaymentMethod]:
        query = self.db.query(PaymentMethod).filter(
            PaymentMethod.person_id == person_id,
            PaymentMethod.processor_id == processor_id,
        )
        if active_only:
            query = query.filter(PaymentMethod.is_active == True)  # noqa: E712
        return query.order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at).all()

    def count_active_for_processor(self, processor_id: UUID) -> int:
        return (
            self.db.query(PaymentMethod)
            .filter(
                PaymentMethod.processor_id == processor_id,
                PaymentMethod.is_active == True,  # noqa: E712
            )
            .count()
        )

    def _clear_defaults(self, person_id: UUID, processor_id: UUID) -> None:
        self.db.query(PaymentMethod).filter(
            PaymentMethod.person_id == person_id,
            PaymentMethod.processor_id == processor_id,
            PaymentMethod.is_default == True,  # noqa: E712
        ).update({"is_default": False}, synchronize_session="fetch")

    def create(self, **fields: object) -> PaymentMethod:
        """Insert a method. A new default demotes the others in the same transaction."""
        method = PaymentMethod(**fields)
        if method.is_default:
            self._clear_defaults(method.person_id, method.processor_id)  # type: ignore[arg-type]
        self.db.add(method)
        self.db.commit()
        self.db.refresh(method)
        return method

    def set_default(self, method_id: UUID) -> PaymentMethod | None:
        method = self.get_active(method_id)
        if not method:
            return None
        self._clear_defaults(method.person_id, method.processor_id)  # type: ignore[arg-type]
        method.is_default = True  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(method)
        return method

    def deactivate(self, method_id: UUID) -> PaymentMethod | None:
        method = self.get_by_id(method_id)
        if not method:
            return None
        method.is_active = False  # type: ignore[assignment]
        method.is_default = False  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(method)
        return method
