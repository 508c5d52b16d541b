"""
FastAPI application factory and API package.

Run with:
    uvicorn rto_validation.api:app --reload --port 8000

Or via main.py:
    python -m rto_validation.main --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rto_validation.api.routes import health_router, validation_router
from rto_validation.config import describe_provider_config, get_settings, resolve_provider_config
from rto_validation.errors import ValidationServiceError, error_payload

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="RTO Validation API",
        description="Validates assessment documents against unit-of-competency requirements",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS — allow the frontend (adjust origins in production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health_router, tags=["Health"])
    application.include_router(validation_router, prefix="/api/validation", tags=["Validation"])

    @application.exception_handler(ValidationServiceError)
    async def service_error_handler(request: Request, exc: ValidationServiceError):
        logger.error(f"[API] {request.method} {request.url.path} → {exc.code.value}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=error_payload(exc))

    @application.on_event("startup")
    async def startup():
        logger.info(f"Starting {settings.app_name} API")
        try:
            badges = describe_provider_config(resolve_provider_config(settings), settings)
        except ValidationServiceError as exc:
            logger.error(f"Provider configuration invalid: {exc}")
            return
        for key, value in badges.items():
            logger.info(f"  {key}: {value}")

    return application


# Module-level instance for `uvicorn rto_validation.api:app`
app = create_app()
