from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.shul import Shul


class ShulRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, shul_id: UUID) -> Shul | None:
        return self.db.query(Shul).filter(Shul.id == shul_id).first()
