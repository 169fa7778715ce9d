"""Invoice generation for recurring schedules and ad-hoc billing."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.auth import require_shul_role
from shulpay.core.errors import NotFoundError, ValidationError
from shulpay.models.invoice import Invoice
from shulpay.models.payment_schedule import PaymentSchedule
from shulpay.repositories.invoice_repository import InvoiceRepository
from shulpay.repositories.member_repository import MemberRepository
from shulpay.repositories.shul_repository import ShulRepository
from shulpay.schemas.invoice import InvoiceLineItem
from shulpay.services.email_service import EmailService

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_DESCRIPTION = "Recurring Subscription"


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.member_repo = MemberRepository(db)
        self.shul_repo = ShulRepository(db)
        self.email_service = EmailService()

    def generate_invoice(
        self,
        shul_id: UUID,
        line_items: list[InvoiceLineItem],
        member_id: UUID | None = None,
        campaign_id: UUID | None = None,
        due_date: date | None = None,
        schedule_id: UUID | None = None,
        notes: str | None = None,
    ) -> Invoice:
        if not line_items:
            raise ValidationError("An invoice needs at least one line item")

        total = sum((item.amount for item in line_items), Decimal("0"))
        items: list[dict[str, Any]] = [item.model_dump(mode="json") for item in line_items]
        invoice = self.invoice_repo.create(
            shul_id=shul_id,
            member_id=member_id,
            campaign_id=campaign_id,
            schedule_id=schedule_id,
            total=total,
            line_items=items,
            due_date=due_date,
            notes=notes,
        )
        logger.info("Generated invoice %s for %s", invoice.invoice_number, total)
        return invoice

    def invoice_for_schedule_run(self, schedule: PaymentSchedule) -> Invoice:
        """Invoice for the schedule's current run date, reused across retries.

        A run that charged but crashed before advancing finds its paid invoice
        here, so no second invoice is generated for the same due date.
        """
        existing = self.invoice_repo.get_for_schedule_run(
            schedule.id,  # type: ignore[arg-type]
            schedule.next_run_date,
        )
        if existing is not None:
            return existing

        item = InvoiceLineItem(
            description=str(schedule.description or DEFAULT_SCHEDULE_DESCRIPTION),
            quantity=Decimal("1"),
            unit_price=schedule.amount,  # type: ignore[arg-type]
            amount=schedule.amount,  # type: ignore[arg-type]
        )
        return self.generate_invoice(
            shul_id=schedule.shul_id,  # type: ignore[arg-type]
            member_id=schedule.person_id,  # type: ignore[arg-type]
            campaign_id=schedule.campaign_id,  # type: ignore[arg-type]
            due_date=schedule.next_run_date,  # type: ignore[arg-type]
            schedule_id=schedule.id,  # type: ignore[arg-type]
            line_items=[item],
        )

    async def send_invoice_email(self, invoice_id: UUID, user_id: UUID) -> str:
        """Email an invoice to its member on behalf of ``user_id``.

        Returns the email API's message id. A pending invoice becomes sent.
        """
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")

        require_shul_role(self.db, user_id, invoice.shul_id)  # type: ignore[arg-type]

        shul = self.shul_repo.get_by_id(invoice.shul_id)  # type: ignore[arg-type]
        member = (
            self.member_repo.get_by_id(invoice.member_id)  # type: ignore[arg-type]
            if invoice.member_id is not None
            else None
        )
        if shul is None or member is None:
            raise NotFoundError("Invoice recipient not found")

        message_id = await self.email_service.send_invoice_email(invoice, member, shul)
        self.invoice_repo.mark_sent(invoice)
        logger.info("Invoice %s emailed by user %s", invoice.invoice_number, user_id)
        return message_id
