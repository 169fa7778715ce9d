from shulpay.models.invoice import Invoice, InvoiceStatus
from shulpay.models.member import Member
from shulpay.models.payment import Payment, PaymentStatus
from shulpay.models.payment_customer import PaymentCustomer
from shulpay.models.payment_method import PaymentMethod, PaymentMethodType
from shulpay.models.payment_schedule import PaymentSchedule, ScheduleFrequency, ScheduleStatus
from shulpay.models.payment_transaction import PaymentTransaction, TransactionStatus
from shulpay.models.processor import Processor, ProcessorCredentials, ProcessorType
from shulpay.models.shul import Shul
from shulpay.models.user_role import UserRole
from shulpay.models.webhook_event import WebhookEvent

__all__ = [
    "Invoice",
    "InvoiceStatus",
    "Member",
    "Payment",
    "PaymentCustomer",
    "PaymentMethod",
    "PaymentMethodType",
    "PaymentSchedule",
    "PaymentStatus",
    "PaymentTransaction",
    "Processor",
    "ProcessorCredentials",
    "ProcessorType",
    "ScheduleFrequency",
    "ScheduleStatus",
    "Shul",
    "TransactionStatus",
    "UserRole",
    "WebhookEvent",
]
