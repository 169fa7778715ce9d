"""Stores gateway tokens for reusable cards and bank accounts."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from shulpay.core.errors import ValidationError
from shulpay.models.payment_method import PaymentMethod, PaymentMethodType
from shulpay.repositories.payment_method_repository import PaymentMethodRepository
from shulpay.services.customer_binder import CustomerBinder
from shulpay.services.gateway import get_gateway
from shulpay.services.processor_registry import ProcessorRegistry

logger = logging.getLogger(__name__)

TOKEN_TYPES = {"cc": PaymentMethodType.CARD, "ach": PaymentMethodType.ACH}


def parse_expiry(exp: str | None) -> tuple[int | None, int | None]:
    """Split an MMYY or MMYYYY expiry ("12/27", "1227", "12/2027") into (month, year).

    Non-digits are ignored. Two-digit years land in the 2000s. Any other
    digit count, or a month outside 1-12, yields ``(None, None)``.
    """
    if not exp:
        return None, None
    digits = "".join(ch for ch in exp if ch.isdigit())
    if len(digits) not in (4, 6):
        return None, None
    month, year = int(digits[:2]), int(digits[2:])
    if not 1 <= month <= 12:
        return None, None
    if len(digits) == 4:
        year += 2000
    return month, year


def default_label(brand: str | None, last4: str) -> str:
    return f"{brand or 'Card'} *{last4}"


@dataclass
class SavedMethod:
    method: PaymentMethod
    customer_id: UUID

    @property
    def method_id(self) -> UUID:
        return self.method.id  # type: ignore[return-value]

    @property
    def external_token(self) -> str:
        return str(self.method.external_token)


class PaymentMethodVault:
    def __init__(self, db: Session):
        self.db = db
        self.method_repo = PaymentMethodRepository(db)
        self.registry = ProcessorRegistry(db)
        self.binder = CustomerBinder(db)

    def save_method(
        self,
        processor_id: UUID,
        person_id: UUID,
        token: str,
        token_type: str = "cc",
        exp: str | None = None,
        last4: str = "",
        brand: str | None = None,
        label: str | None = None,
        cardholder_name: str | None = None,
        is_default: bool = False,
    ) -> SavedMethod:
        """Exchange a one-time token for a stored method and record it."""
        if not token:
            raise ValidationError("Missing required fields: processor_id, person_id, token")
        method_type = TOKEN_TYPES.get(token_type)
        if method_type is None:
            raise ValidationError(f"Unsupported token type: {token_type}")

        processor, credentials = self.registry.require_active(processor_id)
        binding = self.binder.ensure_customer(processor_id, person_id)

        alias = label or default_label(brand, last4)
        gateway = get_gateway(processor.type)  # type: ignore[arg-type]
        result = gateway.create_payment_method(
            credentials,
            customer_id=binding.external_customer_id,
            token=token,
            token_type=token_type,
            alias=alias,
            exp=exp,
            set_as_default=is_default,
        )

        exp_month, exp_year = parse_expiry(exp)
        method = self.method_repo.create(
            shul_id=processor.shul_id,
            person_id=person_id,
            processor_id=processor_id,
            customer_id=binding.customer_id,
            external_token=result.token,
            external_method_id=result.method_id,
            type=method_type.value,
            brand=brand,
            last4=last4,
            exp_month=exp_month,
            exp_year=exp_year,
            label=alias,
            cardholder_name=cardholder_name,
            is_default=is_default,
            is_active=True,
        )
        logger.info(
            "Saved %s method %s for person %s on processor %s",
            method.type,
            method.id,
            person_id,
            processor_id,
        )
        return SavedMethod(method=method, customer_id=binding.customer_id)
