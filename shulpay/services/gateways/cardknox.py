"""Cardknox gateway implementation.

Sales go to the transaction API as form posts and come back URL-encoded.
Customers and stored payment methods live in the recurring API, which
speaks JSON and authenticates with the recurring key.
"""

import hashlib
import hmac
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.parse import parse_qsl

import httpx

from shulpay.core.config import settings
from shulpay.core.errors import GatewayError
from shulpay.models.processor import ProcessorCredentials, ProcessorType
from shulpay.services.gateway import (
    REDACTED,
    CustomerProfile,
    CustomerResult,
    GatewayBase,
    PaymentMethodResult,
    SaleResult,
)

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("xKey", "xToken")
RESULT_STATUSES = {"A": "approved", "D": "declined"}
METHOD_OK_RESULTS = ("S", "Success")


def format_amount(amount: Decimal) -> str:
    """Render an amount with exactly two decimals."""
    return str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_sale_response(body: str) -> SaleResult:
    """Parse a URL-encoded transaction API reply into a SaleResult."""
    raw = dict(parse_qsl(body, keep_blank_values=True))
    if "xResult" not in raw:
        raise GatewayError("Unreadable response from payment gateway")

    result = raw["xResult"]
    try:
        fee = Decimal(raw.get("xFee") or "0")
    except InvalidOperation:
        fee = Decimal("0")

    return SaleResult(
        result=result,
        status=RESULT_STATUSES.get(result, "error"),
        ref_num=raw.get("xRefNum") or None,
        batch=raw.get("xBatch") or None,
        result_code=raw.get("xResultCode") or raw.get("xStatus") or None,
        error=raw.get("xError") or None,
        avs_result=raw.get("xAvsResultCode") or None,
        cvv_result=raw.get("xCvvResultCode") or None,
        fee=fee,
        raw=raw,
    )


class CardknoxGateway(GatewayBase):
    def __init__(
        self,
        gateway_url: str | None = None,
        recurring_url: str | None = None,
        timeout: float | None = None,
    ):
        self.gateway_url = gateway_url or settings.CARDKNOX_GATEWAY_URL
        self.recurring_url = (recurring_url or settings.CARDKNOX_RECURRING_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GATEWAY_TIMEOUT_SECONDS

    @property
    def gateway_type(self) -> ProcessorType:
        return ProcessorType.CARDKNOX

    @staticmethod
    def _software(credentials: ProcessorCredentials) -> tuple[str, str]:
        name = credentials.software_name or settings.DEFAULT_SOFTWARE_NAME
        version = credentials.software_version or settings.DEFAULT_SOFTWARE_VERSION
        return str(name), str(version)

    @staticmethod
    def redact(request: dict[str, Any]) -> dict[str, Any]:
        redacted = dict(request)
        for key in SECRET_FIELDS:
            if key in redacted:
                redacted[key] = REDACTED
        return redacted

    def build_sale(
        self,
        credentials: ProcessorCredentials,
        amount: Decimal,
        token: str,
        invoice: str | None = None,
        description: str | None = None,
    ) -> dict[str, str]:
        if not credentials.transaction_key:
            raise GatewayError("Processor credentials not found")

        software_name, software_version = self._software(credentials)
        request = {
            "xKey": str(credentials.transaction_key),
            "xVersion": settings.CARDKNOX_API_VERSION,
            "xSoftwareName": software_name,
            "xSoftwareVersion": software_version,
            "xCommand": "cc:Sale",
            "xAmount": format_amount(amount),
            "xToken": token,
        }
        if invoice:
            request["xInvoice"] = invoice[:20]
        if description:
            request["xDescription"] = description[:64]
        return request

    def sale(self, credentials: ProcessorCredentials, request: dict[str, str]) -> SaleResult:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.gateway_url, data=request)
        except httpx.HTTPError as exc:
            logger.warning("Cardknox sale request failed: %s", exc)
            raise GatewayError(f"Payment gateway request failed: {exc}") from exc

        result = parse_sale_response(response.text)
        logger.info(
            "Cardknox sale result=%s ref=%s amount=%s",
            result.result,
            result.ref_num,
            request.get("xAmount"),
        )
        return result

    def _post_recurring(
        self, credentials: ProcessorCredentials, endpoint: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        api_key = credentials.recurring_api_key
        if not api_key:
            raise GatewayError("No API key configured for processor")

        headers = {
            "Authorization": api_key,
            "X-Recurring-Api-Version": settings.CARDKNOX_RECURRING_API_VERSION,
            "Content-Type": "application/json",
        }
        url = f"{self.recurring_url}/{endpoint}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=payload, headers=headers)
            data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Cardknox %s request failed: %s", endpoint, exc)
            raise GatewayError(f"Payment gateway request failed: {exc}") from exc
        except ValueError as exc:
            raise GatewayError("Unreadable response from payment gateway") from exc

        if not isinstance(data, dict):
            raise GatewayError("Unreadable response from payment gateway")
        return data

    def create_customer(
        self, credentials: ProcessorCredentials, profile: CustomerProfile
    ) -> CustomerResult:
        software_name, software_version = self._software(credentials)
        payload = {
            "SoftwareName": software_name,
            "SoftwareVersion": software_version,
            "CustomerNumber": profile.customer_number,
            "Email": profile.email,
            "BillFirstName": profile.first_name,
            "BillLastName": profile.last_name,
            "BillStreet": profile.street,
            "BillCity": profile.city,
            "BillState": profile.state,
            "BillZip": profile.zip,
            "BillPhone": profile.phone,
        }
        data = self._post_recurring(credentials, "CreateCustomer", payload)

        error_message = str(data.get("ErrorMessage") or data.get("Error") or "")
        if data.get("Result") == "Error":
            if "already" not in error_message.lower():
                raise GatewayError(f"Cardknox Error: {error_message or 'Unknown error'}")
            logger.warning(
                "Cardknox customer %s already exists", profile.customer_number
            )
            return CustomerResult(
                customer_id=data.get("CustomerId") or None, already_exists=True, raw=data
            )

        return CustomerResult(customer_id=data.get("CustomerId") or None, raw=data)

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
        software_name, software_version = self._software(credentials)
        payload: dict[str, Any] = {
            "SoftwareName": software_name,
            "SoftwareVersion": software_version,
            "CustomerId": customer_id,
            "Token": token,
            "TokenType": token_type,
            "TokenAlias": alias,
            "SetAsDefault": set_as_default,
        }
        if exp:
            payload["Exp"] = "".join(ch for ch in exp if ch.isdigit())

        data = self._post_recurring(credentials, "CreatePaymentMethod", payload)
        if data.get("Result") not in METHOD_OK_RESULTS:
            message = data.get("ErrorMessage") or data.get("Error") or "Unknown error"
            raise GatewayError(f"Payment method creation failed: {message}")

        persistent = data.get("Token") or data.get("xToken") or data.get("PaymentMethodId")
        if not persistent:
            raise GatewayError("No token returned from payment method creation")

        method_id = data.get("PaymentMethodId")
        return PaymentMethodResult(
            token=str(persistent),
            method_id=str(method_id) if method_id else None,
            raw=data,
        )

    def verify_webhook_signature(self, payload: bytes, signature: str, secret: str) -> bool:
        """HMAC-SHA256 of the raw body, hex encoded, optionally ``sha256=`` prefixed."""
        if not secret or not signature:
            return False
        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        if signature.startswith("sha256="):
            signature = signature[7:]
        return hmac.compare_digest(expected, signature.strip().lower())
