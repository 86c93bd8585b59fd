"""
Pantry Proxy Backend — FastAPI Application Factory
===================================================

What:  Builds the FastAPI application: validates configuration, creates the
       upstream clients and services, registers middleware, exception handlers
       and routes.
How:   Factory pattern. create_app(settings) returns a configured instance;
       run() is the process entry point (console script `pantry-proxy`).
Who:   `pantry-proxy`, `python -m pantry_proxy`, or
       `uvicorn pantry_proxy.main:create_app --factory`.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware:  Request ID → Logging → CORS               │
    │                                                         │
    │  Routes ({API_PREFIX}):                                 │
    │    /locations  /food  /food/{id}   → RecordService      │
    │    /attachments                    → AttachmentService  │
    │    /analyzeImage  /pantryChat      → AIRelayService     │
    │  /health                           → DocumentClient     │
    │                                                         │
    │  Exception Handlers:                                    │
    │    ValidationError→400 │ UpstreamError→500 │ Parse→500  │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup (create_app):
    1. Settings.validate_required(): ConfigurationError refuses to build
    2. Create the two httpx.AsyncClient pools and the services
    Startup (lifespan):
    3. Initialize logging, log the effective routing
    Shutdown (lifespan):
    4. Close both httpx pools
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pantry_proxy import __version__
from pantry_proxy.config import Settings, get_settings
from pantry_proxy.exceptions import (
    ConfigurationError,
    ParseError,
    PantryProxyError,
    UpstreamError,
    ValidationError,
)
from pantry_proxy.middleware.logging import RequestLoggingMiddleware
from pantry_proxy.middleware.request_id import RequestIDMiddleware, request_id_var
from pantry_proxy.routes import ai, attachments, health, records
from pantry_proxy.services.ai_relay import AIRelayService
from pantry_proxy.services.attachment_service import AttachmentService
from pantry_proxy.services.document_client import DocumentClient
from pantry_proxy.services.record_service import RecordService

logger = logging.getLogger(__name__)

LOCATIONS_TABLE = "Locations"
FOOD_TABLE = "Food"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once at startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise from the HTTP stack
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging and a summary of the effective configuration.
    Shutdown: close the upstream connection pools.
    """
    settings: Settings = app.state.settings

    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Pantry Proxy %s starting up...", __version__)
    logger.info("Document service: %s (doc %s)", settings.grist_base_url, settings.grist_doc_id)
    logger.info("AI microservice: %s (provider=%s)", settings.ai_service_url, settings.ai_provider)
    logger.info("API prefix: '%s'", settings.api_prefix or "/")
    logger.info("=" * 60)

    yield

    logger.info("Pantry Proxy shutting down...")
    await app.state.document_http.aclose()
    await app.state.ai_http.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared ErrorResponse body.

    Handler hierarchy:
        ValidationError          → 400 (message + details)
        RequestValidationError   → 400 (FastAPI body/path parsing)
        UpstreamError            → 500 (generic message, upstream detail logged)
        ParseError               → 500 (generic message, raw text logged)
        PantryProxyError (base)  → 500
        Exception (fallback)     → 500 (traceback logged)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation error: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Request body or parameters are invalid.",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        rid = request_id_var.get("")
        logger.error("[%s] Upstream error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "upstream_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(ParseError)
    async def handle_parse_error(request: Request, exc: ParseError):
        rid = request_id_var.get("")
        logger.error("[%s] Parse error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "parse_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(PantryProxyError)
    async def handle_proxy_error(request: Request, exc: PantryProxyError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Explicit configuration. Defaults to get_settings() (the
                   process environment), which is what `--factory` uses.
        transport: Replaces the network transport of both upstream clients
                   (tests pass an httpx.MockTransport).

    Raises:
        ConfigurationError: document-service credentials are missing.
    """
    settings = settings or get_settings()
    settings.validate_required()

    app = FastAPI(
        title="Pantry Proxy API",
        description=(
            "Proxy between the pantry front end, a Grist document holding "
            "Locations and Food tables, and an AI microservice for food photo "
            "analysis and pantry chat."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── Upstream clients and services ─────────────────────────────────────
    app.state.document_http = DocumentClient.build_http_client(settings, transport)
    app.state.ai_http = AIRelayService.build_http_client(settings, transport)

    document = DocumentClient(settings, app.state.document_http)
    attachment_service = AttachmentService(document, settings.max_upload_bytes)

    app.state.document_client = document
    app.state.attachment_service = attachment_service
    app.state.locations_service = RecordService(document, LOCATIONS_TABLE)
    app.state.food_service = RecordService(document, FOOD_TABLE, attachments=attachment_service)
    app.state.ai_relay = AIRelayService(settings, app.state.ai_http)

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware, quiet_paths=("/health",))
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(records.router, prefix=settings.api_prefix)
    app.include_router(attachments.router, prefix=settings.api_prefix)
    app.include_router(ai.router, prefix=settings.api_prefix)
    app.include_router(health.router)

    # Mounted last so API routes win over same-named static paths
    if settings.static_dir:
        static_root = Path(settings.static_dir)
        if static_root.is_dir():
            app.mount("/", StaticFiles(directory=static_root, html=True), name="static")
        else:
            logger.warning("STATIC_DIR %s is not a directory; static hosting disabled", static_root)

    return app


def run() -> None:
    """
    Process entry point: load settings, refuse to start on missing
    credentials, then serve with uvicorn.
    """
    settings = get_settings()
    try:
        app = create_app(settings)
    except ConfigurationError as e:
        setup_logging(settings.log_level)
        logger.error("%s", e.message)
        logger.error("Fix the configuration and restart the server.")
        sys.exit(1)

    uvicorn.run(app, host=settings.backend_host, port=settings.backend_port)
