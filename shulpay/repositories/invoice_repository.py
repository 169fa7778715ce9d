from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Numeric, case, func, literal
from sqlalchemy.orm import Session

from shulpay.models.invoice import Invoice, InvoiceStatus
from shulpay.models.shared import utc_now


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_invoice_number(self, shul_id: UUID) -> str:
        """Generate the next per-shul invoice number for today."""
        today = datetime.now().strftime("%Y%m%d")
        prefix = f"INV-{today}-"

        result = (
            self.db.query(Invoice.invoice_number)
            .filter(
                Invoice.shul_id == shul_id,
                Invoice.invoice_number.like(f"{prefix}%"),
            )
            .order_by(Invoice.invoice_number.desc())
            .first()
        )

        if result:
            try:
                new_num = int(result[0].split("-")[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_by_id(self, invoice_id: UUID, shul_id: UUID | None = None) -> Invoice | None:
        query = self.db.query(Invoice).filter(Invoice.id == invoice_id)
        if shul_id is not None:
            query = query.filter(Invoice.shul_id == shul_id)
        return query.first()

    def create(
        self,
        *,
        shul_id: UUID,
        total: Decimal,
        line_items: list[dict[str, Any]],
        member_id: UUID | None = None,
        campaign_id: UUID | None = None,
        schedule_id: UUID | None = None,
        due_date: Any = None,
        notes: str | None = None,
    ) -> Invoice:
        invoice = Invoice(
            shul_id=shul_id,
            member_id=member_id,
            campaign_id=campaign_id,
            schedule_id=schedule_id,
            invoice_number=self._generate_invoice_number(shul_id),
            status=InvoiceStatus.PENDING.value,
            total=total,
            balance=total,
            line_items=line_items,
            due_date=due_date,
            notes=notes,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def apply_payment(self, invoice_id: UUID, shul_id: UUID, amount: Decimal) -> bool:
        """Decrement the balance by ``amount`` in a single conditional UPDATE.

        The balance is floored at zero; status becomes paid (with paid_at) at
        zero and partial otherwise. Staged in the current transaction, the caller commits.
        """
        charged = literal(amount, Numeric(12, 2))
        remaining = func.coalesce(Invoice.balance, Invoice.total) - charged
        new_balance = case((remaining > 0, remaining), else_=literal(Decimal("0"), Numeric(12, 2)))
        updated = (
            self.db.query(Invoice)
            .filter(
                Invoice.id == invoice_id,
                Invoice.shul_id == shul_id,
                Invoice.status != InvoiceStatus.VOID.value,
            )
            .update(
                {
                    Invoice.balance: new_balance,
                    Invoice.status: case(
                        (remaining > 0, InvoiceStatus.PARTIAL.value),
                        else_=InvoiceStatus.PAID.value,
                    ),
                    Invoice.paid_at: case(
                        (remaining > 0, Invoice.paid_at),
                        else_=literal(utc_now(), DateTime(timezone=True)),
                    ),
                },
                synchronize_session=False,
            )
        )
        return bool(updated)

    def mark_sent(self, invoice: Invoice) -> Invoice:
        """Flag a pending invoice as sent; other statuses only get sent_at."""
        if invoice.status == InvoiceStatus.PENDING.value:
            invoice.status = InvoiceStatus.SENT.value  # type: ignore[assignment]
        invoice.sent_at = utc_now()  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def get_for_schedule_run(self, schedule_id: UUID, due_date: Any) -> Invoice | None:
        """The non-void invoice already generated for this schedule run, paid or not."""
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.schedule_id == schedule_id,
                Invoice.due_date == due_date,
                Invoice.status != InvoiceStatus.VOID.value,
            )
            .first()
        )
