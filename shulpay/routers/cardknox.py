"""Cardknox endpoints used by the browser tokenization flow and the gateway."""

import json
import logging
from typing import Any
from urllib.parse import parse_qsl
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from shulpay.core.config import settings
from shulpay.core.database import get_db
from shulpay.core.errors import ShulPayError, ValidationError
from shulpay.core.rate_limiter import RateLimiter
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
from shulpay.services.charge_executor import ChargeExecutor
from shulpay.services.customer_binder import CustomerBinder
from shulpay.services.payment_method_vault import PaymentMethodVault
from shulpay.services.processor_registry import ProcessorRegistry
from shulpay.services.webhook_reconciler import WebhookReconciler

logger = logging.getLogger(__name__)

router = APIRouter()

# Module-level rate limiter instance for the tokenization config endpoint
config_rate_limiter = RateLimiter(
    max_requests=settings.CONFIG_RATE_LIMIT_MAX,
    window_seconds=settings.CONFIG_RATE_LIMIT_WINDOW_SECONDS,
)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def _check_rate_limit(request: Request) -> None:
    """Dependency that enforces the per-IP limit on config lookups."""
    if not config_rate_limiter.is_allowed(client_ip(request)):
        raise ShulPayError("Too many requests", status_code=429)


@router.post(
    "/cardknox-config",
    response_model=ConfigResponse,
    summary="Get tokenization config",
    responses={
        400: {"description": "Invalid, inactive or unconfigured processor"},
        404: {"description": "Processor not found"},
        429: {"description": "Too many requests"},
    },
    dependencies=[Depends(_check_rate_limit)],
)
async def get_config(
    data: ConfigRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> ConfigResponse:
    """Return the client-side tokenization key for a processor."""
    try:
        processor_id = UUID(data.processor_id or "")
    except ValueError:
        raise ValidationError("Invalid processor_id") from None

    config = ProcessorRegistry(db).client_config(processor_id)
    response.headers["Cache-Control"] = "no-store"
    return ConfigResponse(
        ifieldsKey=config.ifields_key,
        softwareName=config.software_name,
        softwareVersion=config.software_version,
    )


@router.post(
    "/cardknox-customer",
    response_model=CustomerBindResponse,
    summary="Ensure gateway customer",
    responses={
        404: {"description": "Processor or person not found"},
        502: {"description": "Gateway error"},
    },
)
def ensure_customer(
    data: CustomerBindRequest,
    db: Session = Depends(get_db),
) -> CustomerBindResponse:
    binding = CustomerBinder(db).ensure_customer(
        data.processor_id, data.person_id, force_create=data.force_create
    )
    return CustomerBindResponse(
        customer_id=binding.customer_id,
        external_customer_id=binding.external_customer_id,
        created=binding.created,
    )


@router.post(
    "/cardknox-method",
    response_model=MethodSaveResponse,
    summary="Save payment method",
    responses={
        404: {"description": "Processor or person not found"},
        502: {"description": "Gateway error"},
    },
)
def save_method(
    data: MethodSaveRequest,
    db: Session = Depends(get_db),
) -> MethodSaveResponse:
    saved = PaymentMethodVault(db).save_method(
        processor_id=data.processor_id,
        person_id=data.person_id,
        token=data.token,
        token_type=data.token_type,
        exp=data.exp,
        last4=data.last4,
        brand=data.brand,
        label=data.label,
        cardholder_name=data.cardholder_name,
        is_default=data.is_default,
    )
    return MethodSaveResponse(
        method_id=saved.method_id,
        external_token=saved.external_token,
        customer_id=saved.customer_id,
    )


@router.post(
    "/cardknox-charge",
    response_model=ChargeResponse,
    response_model_exclude_none=True,
    summary="Charge a card or bank account",
    responses={
        400: {"description": "Invalid request, declined or gateway error"},
        404: {"description": "Processor, method or invoice not found"},
        500: {"description": "Payment processing failed"},
    },
)
def charge(
    data: ChargeRequest,
    db: Session = Depends(get_db),
) -> Any:
    try:
        outcome = ChargeExecutor(db).charge(
            processor_id=data.processor_id,
            amount=data.amount,
            method_id=data.method_id,
            token=data.token,
            person_id=data.person_id,
            invoice_id=data.invoice_id,
            campaign_id=data.campaign_id,
            description=data.description,
            idempotency_key=data.idempotency_key,
        )
    except ShulPayError:
        raise
    except Exception:
        logger.exception("Unexpected error while processing charge")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Payment processing failed"},
        )

    body = ChargeResponse(
        success=outcome.success,
        status=outcome.status,
        transaction_id=outcome.transaction_id,
        payment_id=outcome.payment_id,
        message=outcome.message,
        duplicate=outcome.duplicate or None,
        error=outcome.error,
        response_code=outcome.response_code,
    )
    if not outcome.success:
        return JSONResponse(
            status_code=400, content=body.model_dump(mode="json", exclude_none=True)
        )
    return body


def parse_webhook_body(body: bytes, content_type: str) -> dict[str, Any]:
    """Decode a postback sent as JSON, a form, or a bare URL-encoded string."""
    text = body.decode("utf-8", errors="replace")
    if "application/json" in content_type:
        try:
            payload = json.loads(text or "{}")
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
    return dict(parse_qsl(text, keep_blank_values=True))


@router.post(
    "/cardknox-webhook",
    response_class=PlainTextResponse,
    summary="Gateway postback",
)
async def webhook(request: Request, db: Session = Depends(get_db)) -> PlainTextResponse:
    """Always answers 200 so the gateway does not retry."""
    try:
        body = await request.body()
        payload = parse_webhook_body(body, request.headers.get("content-type", ""))
        WebhookReconciler(db).handle(
            payload,
            raw_body=body,
            signature=request.headers.get("X-Webhook-Signature"),
        )
    except Exception:
        logger.exception("Failed to process gateway postback")
        return PlainTextResponse("Error logged", status_code=200)
    return PlainTextResponse("OK", status_code=200)
