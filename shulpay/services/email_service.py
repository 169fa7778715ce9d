"""Email service for sending invoice emails through the Resend API."""

from __future__ import annotations

import html
import logging
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import httpx

from shulpay.core.config import settings
from shulpay.core.errors import ShulPayError, ValidationError

if TYPE_CHECKING:
    from shulpay.models.invoice import Invoice
    from shulpay.models.member import Member
    from shulpay.models.shul import Shul

logger = logging.getLogger(__name__)


def _format_amount(value: object) -> str:
    """Format a monetary amount as dollars with two decimals."""
    if value is None:
        return "$0.00"
    return f"${Decimal(str(value)):,.2f}"


def _sender_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9 ]", "", name).strip() or "Billing"


def render_invoice_html(invoice: Invoice, member: Member, shul: Shul) -> str:
    """Render the HTML summary of an invoice with its line items."""
    shul_name = html.escape(str(shul.name or ""))
    items = "".join(
        "<li style=\"border-bottom: 1px solid #e2e8f0; padding: 10px 0;\">"
        f"<span>{html.escape(str(item.get('description', '')))} "
        f"(x{item.get('quantity', 1)})</span> "
        f"<span>{_format_amount(item.get('amount'))}</span></li>"
        for item in (invoice.line_items or [])
    )
    footer = html.escape(str(shul.email_footer or "Thank you for your support."))
    due = invoice.due_date.isoformat() if invoice.due_date else "Due on Receipt"
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<h1>Invoice from {shul_name}</h1>"
        f"<p>Hello {html.escape(member.full_name)},</p>"
        "<p>A new invoice has been generated for you.</p>"
        f"<h2>Invoice #{html.escape(str(invoice.invoice_number))}</h2>"
        f"<p style=\"font-size: 24px; font-weight: bold;\">{_format_amount(invoice.total)}</p>"
        f"<p>Due Date: {due}</p>"
        "<h3>Line Items:</h3>"
        f'<ul style="list-style: none; padding: 0;">{items}</ul>'
        f'<p style="color: #64748b; font-size: 14px;">{footer}</p>'
        "</div>"
    )


class EmailService:
    """Service for sending transactional emails via the Resend HTTP API."""

    async def send_email(self, to: str, subject: str, html_body: str, sender: str) -> str:
        """Send one email.

        Returns:
            The message id assigned by the email API.
        """
        if not settings.RESEND_API_KEY:
            logger.error("RESEND_API_KEY not set, cannot send email to %s", to)
            raise ShulPayError("Email service not configured", status_code=500)

        body: dict[str, Any] = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(settings.RESEND_API_URL, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Email API request failed: %s", exc)
            raise ShulPayError("Failed to send email", status_code=500) from exc

        if not response.is_success:
            logger.error("Email API error %s: %s", response.status_code, response.text[:500])
            raise ShulPayError("Failed to send email", status_code=500)

        message_id = str(response.json().get("id", ""))
        logger.info("Email sent to %s: %s", to, subject)
        return message_id

    async def send_invoice_email(self, invoice: Invoice, member: Member, shul: Shul) -> str:
        if not member.email:
            raise ValidationError("Member has no email address")

        shul_name = str(shul.name or "")
        return await self.send_email(
            to=str(member.email),
            subject=f"Invoice #{invoice.invoice_number} from {shul_name}",
            html_body=render_invoice_html(invoice, member, shul),
            sender=f"{_sender_name(shul_name)} <{settings.EMAIL_FROM_ADDRESS}>",
        )
