from shulpay.repositories.invoice_repository import InvoiceRepository
from shulpay.repositories.member_repository import MemberRepository
from shulpay.repositories.payment_customer_repository import PaymentCustomerRepository
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.repositories.payment_repository import PaymentRepository
from shulpay.repositories.payment_schedule_repository import PaymentScheduleRepository
from shulpay.repositories.processor_repository import ProcessorRepository
from shulpay.repositories.shul_repository import ShulRepository
from shulpay.repositories.transaction_repository import TransactionRepository
from shulpay.repositories.user_role_repository import UserRoleRepository
from shulpay.repositories.webhook_event_repository import WebhookEventRepository

__all__ = [
    "InvoiceRepository",
    "MemberRepository",
    "PaymentCustomerRepository",
    "PaymentMethodRepository",
    "PaymentRepository",
    "PaymentScheduleRepository",
    "ProcessorRepository",
    "ShulRepository",
    "TransactionRepository",
    "UserRoleRepository",
    "WebhookEventRepository",
]
