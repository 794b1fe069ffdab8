"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lodger_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lodger_ledger.api.v1 import deductions, notices, payments, sweeps, tenancies
from lodger_ledger.domain.exceptions import (
    CapacityExceededError,
    DocumentServiceError,
    DomainException,
    InsufficientFundsError,
    IntegrityViolation,
    InvalidStateError,
    NotFoundError,
    RentCapExceededError,
    ValidationError,
)
from lodger_ledger.infrastructure.observability.logging import setup_logging
from lodger_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific class wins; lookup walks the exception's MRO
STATUS_CODES = {
    NotFoundError: 404,
    ValidationError: 422,
    InsufficientFundsError: 422,
    RentCapExceededError: 422,
    InvalidStateError: 409,
    CapacityExceededError: 409,
    IntegrityViolation: 423,
    DocumentServiceError: 503,
}


def status_for(exc: DomainException) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status = status_for(exc)
    log = logging.error if status >= 500 else logging.warning
    log(f"{type(exc).__name__}: {exc}", extra={"request_id": getattr(request.state, "request_id", "unknown")})
    return JSONResponse(status_code=status, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Lodger Ledger",
        description="Lodger tenancy lifecycle, rent ledger and deposit service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(tenancies.router, prefix="/v1", tags=["tenancies"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(deductions.router, prefix="/v1", tags=["deductions"])
    app.include_router(notices.router, prefix="/v1", tags=["notices"])
    app.include_router(sweeps.router, prefix="/v1", tags=["sweeps"])

    return app


app = create_app()
