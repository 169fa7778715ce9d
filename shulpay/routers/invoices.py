from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shulpay.core.auth import get_current_user
from shulpay.core.database import get_db
from shulpay.schemas.invoice import InvoiceEmailRequest, InvoiceEmailResponse
from shulpay.services.invoice_service import InvoiceService

router = APIRouter()


@router.post(
    "/send-invoice-email",
    response_model=InvoiceEmailResponse,
    summary="Email an invoice",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Permission denied"},
        404: {"description": "Invoice not found"},
        500: {"description": "Email service not configured or send failed"},
    },
)
async def send_invoice_email(
    data: InvoiceEmailRequest,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> InvoiceEmailResponse:
    message_id = await InvoiceService(db).send_invoice_email(data.invoiceId, user_id)
    return InvoiceEmailResponse(success=True, id=message_id)
