from shulpay.schemas.cardknox import (
    ChargeRequest,
    ChargeResponse,
    ConfigRequest,
    ConfigResponse,
    CustomerBindRequest,
    CustomerBindResponse,
    MethodSaveRequest,
    MethodSaveResponse,
)
from shulpay.schemas.invoice import InvoiceEmailRequest, InvoiceEmailResponse, InvoiceLineItem
from shulpay.schemas.processor import (
    ProcessorCreate,
    ProcessorCredentialsInput,
    ProcessorResponse,
    ProcessorUpdate,
)
from shulpay.schemas.schedule import (
    RecurringBillingResult,
    ScheduleCreate,
    ScheduleResponse,
    ScheduleRunError,
    ScheduleStatusUpdate,
)

__all__ = [
    "ChargeRequest",
    "ChargeResponse",
    "ConfigRequest",
    "ConfigResponse",
    "CustomerBindRequest",
    "CustomerBindResponse",
    "InvoiceEmailRequest",
    "InvoiceEmailResponse",
    "InvoiceLineItem",
    "MethodSaveRequest",
    "MethodSaveResponse",
    "ProcessorCreate",
    "ProcessorCredentialsInput",
    "ProcessorResponse",
    "ProcessorUpdate",
    "RecurringBillingResult",
    "ScheduleCreate",
    "ScheduleResponse",
    "ScheduleRunError",
    "ScheduleStatusUpdate",
]
