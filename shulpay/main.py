import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shulpay.core.config import settings
from shulpay.core.database import init_db
from shulpay.core.errors import ShulPayError
from shulpay.routers import cardknox, invoices, processors, recurring_billing, schedules

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Cardknox", "description": "Tokenization config, customers, methods and charges."},
    {"name": "Billing", "description": "Recurring billing runs and invoice delivery."},
    {"name": "Processors", "description": "Manage a shul's payment gateway accounts."},
    {"name": "Schedules", "description": "Manage recurring payment schedules."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.version)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description="Payment processing and recurring billing for shul management.",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShulPayError)
async def shulpay_error_handler(request: Request, exc: ShulPayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "error": message})


app.include_router(cardknox.router, tags=["Cardknox"])
app.include_router(recurring_billing.router, tags=["Billing"])
app.include_router(invoices.router, tags=["Billing"])
app.include_router(
    processors.router, prefix="/v1/shuls/{shul_id}/processors", tags=["Processors"]
)
app.include_router(schedules.router, prefix="/v1/shuls/{shul_id}/schedules", tags=["Schedules"])



def run() -> None:
    """Serve the API with uvicorn (the ``shulpay`` console script)."""
    uvicorn.run(
        "shulpay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )


if __name__ == "__main__":
    run()
