"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import api_router
from .web import web_router
from .middleware.headers import ForwardedHeadersMiddleware
from .middleware.logging import LoggingMiddleware
from dynqr.errors import (
    DuplicateEmail,
    DuplicateShortCode,
    DuplicateUser,
    DynQRError,
    GenerationExhausted,
    ValidationError,
)

logger = logging.getLogger("dynqr.web")


def _field_name(loc) -> str:
    # ("body", "size") -> "size"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors onto HTTP responses."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = {_field_name(e["loc"]): e["msg"] for e in exc.errors()}
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request data", "details": details},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request data", "details": exc.errors},
        )

    @app.exception_handler(DuplicateUser)
    @app.exception_handler(DuplicateEmail)
    async def duplicate_user_handler(request: Request, exc: DynQRError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": str(exc)},
        )

    @app.exception_handler(GenerationExhausted)
    @app.exception_handler(DuplicateShortCode)
    async def generation_handler(request: Request, exc: DynQRError):
        logger.error(f"Short code generation failed for {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to create QR code"},
        )

    @app.exception_handler(DynQRError)
    async def service_error_handler(request: Request, exc: DynQRError):
        logger.error(f"Service error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app(
    store_instance,
    cache_instance,
    service_instance,
    config,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        store_instance: Record store instance
        cache_instance: Cache instance
        service_instance: Service instance
        config: Configuration instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Dynamic QR",
        description="Dynamic QR codes whose destination can change after printing",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Store instances in app state for access in routes
    app.state.store = store_instance
    app.state.cache = cache_instance
    app.state.service = service_instance
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(ForwardedHeadersMiddleware, fallback_base_url=config.base_url)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(web_router, tags=["Scan"])
    app.include_router(api_router, prefix="/api", tags=["API"])

    return app
