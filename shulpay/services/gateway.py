"""Payment gateway abstraction layer.

Gateways expose three operations: a one-shot sale against a token, and the
customer / payment-method vault calls used for recurring billing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from shulpay.core.errors import GatewayError
from shulpay.models.processor import ProcessorCredentials, ProcessorType

REDACTED = "[REDACTED]"


@dataclass
class SaleResult:
    """Parsed response of a sale request."""

    result: str
    status: str
    ref_num: str | None = None
    batch: str | None = None
    result_code: str | None = None
    error: str | None = None
    avs_result: str | None = None
    cvv_result: str | None = None
    fee: Decimal = Decimal("0")
    raw: dict[str, str] = field(default_factory=dict)

    @property
    def approved(self) -> bool:
        return self.status == "approved"

    @property
    def reason(self) -> str | None:
        """Gateway explanation for a non-approval: xError, else xStatus."""
        return self.error or self.raw.get("xStatus") or None


@dataclass
class CustomerResult:
    customer_id: str | None
    already_exists: bool = False
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentMethodResult:
    token: str
    method_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class CustomerProfile:
    """Billing details sent when creating a gateway customer."""

    customer_number: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""


class GatewayBase(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> ProcessorType:
        """Return the processor type this gateway serves."""
        pass  # pragma: no cover

    @abstractmethod
    def build_sale(
        self,
        credentials: ProcessorCredentials,
        amount: Decimal,
        token: str,
        invoice: str | None = None,
        description: str | None = None,
    ) -> dict[str, str]:
        """Build the sale request body (unredacted)."""
        pass  # pragma: no cover

    @abstractmethod
    def sale(self, credentials: ProcessorCredentials, request: dict[str, str]) -> SaleResult:
        """Submit a sale built by ``build_sale``."""
        pass  # pragma: no cover

    @abstractmethod
    def create_customer(
        self, credentials: ProcessorCredentials, profile: CustomerProfile
    ) -> CustomerResult:
        pass  # pragma: no cover

    @abstractmethod
    def create_payment_method(
        self,
        credentials: ProcessorCredentials,
        customer_id: str,
        token: str,
        token_type: str,
        alias: str,
        exp: str | None,
        set_as_default: bool,
    ) -> PaymentMethodResult:
        pass  # pragma: no cover

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str, secret: str) -> bool:
        """Verify a postback signature against the shared secret."""
        pass  # pragma: no cover

    @staticmethod
    def redact(request: dict[str, Any]) -> dict[str, Any]:
        """Copy of a request body that is safe to store and log."""
        return request


def get_gateway(gateway_type: ProcessorType | str) -> GatewayBase:
    """Factory function to get the gateway for a processor type."""
    from shulpay.services.gateways.cardknox import CardknoxGateway

    gateways: dict[ProcessorType, type[GatewayBase]] = {
        ProcessorType.CARDKNOX: CardknoxGateway,
    }

    try:
        key = ProcessorType(gateway_type)
    except ValueError:
        raise GatewayError(f"Unsupported payment processor: {gateway_type}") from None

    gateway_class = gateways.get(key)
    if not gateway_class:
        raise GatewayError(f"Unsupported payment processor: {gateway_type}")
    return gateway_class()
