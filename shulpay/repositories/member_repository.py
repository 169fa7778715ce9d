from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.models.member import Member


class MemberRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, member_id: UUID, shul_id: UUID | None = None) -> Member | None:
        query = self.db.query(Member).filter(Member.id == member_id)
        if shul_id is not None:
            query = query.filter(Member.shul_id == shul_id)
        return query.first()
