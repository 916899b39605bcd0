"""FastAPI application for the consulting billing engine."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from consult_billing import __version__
from consult_billing.config import get_settings
from consult_billing.models import (
    BillingError,
    DuplicateInvoiceNumberError,
    EmptyInvoiceError,
    InvalidDateError,
    InvalidPeriodError,
    InvariantViolationError,
    NotFoundError,
    StrictValidationError,
)

from api.routes import router

logger = logging.getLogger(__name__)

settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(
    title="Consulting Billing API",
    description="Engagement status, billing-period aggregation and invoice generation.",
    version=__version__,
)

# Set BILLING_ALLOWED_ORIGINS='["*"]' to allow any origin
_allow_all = "*" in settings.allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if _allow_all else settings.allowed_origins,
    allow_credentials=not _allow_all,  # credentials not allowed with wildcard
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(router)

# Most specific first: the lookup walks the exception's MRO
ERROR_STATUS: dict[type[BillingError], int] = {
    InvalidDateError: 400,
    InvalidPeriodError: 400,
    StrictValidationError: 400,
    EmptyInvoiceError: 400,
    NotFoundError: 404,
    DuplicateInvoiceNumberError: 409,
    InvariantViolationError: 500,
}


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    status_code = next(
        (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS),
        500,
    )
    if status_code >= 500:
        logger.error("Billing defect on %s %s: %s", request.method, request.url.path, exc)
    errors = exc.errors if isinstance(exc, StrictValidationError) else [str(exc)]
    return JSONResponse(
        status_code=status_code,
        content={"error_type": type(exc).__name__, "errors": errors},
    )


@app.get("/")
async def root():
    return {
        "name": "Consulting Billing API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
    }
