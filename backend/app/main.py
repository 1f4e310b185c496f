"""
Inkwell Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() wires stores, services, middleware,
       exception handlers and routes, and returns a configured FastAPI app.
Who:   Called by uvicorn (uvicorn app.main:app) and by the test suite, which
       passes its own Settings and in-memory stores.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────┐ ┌──────────────┐ ┌──────────────┐   │
    │  │ /api/auth  │ │ /humanize,   │ │ /payment,    │   │
    │  │            │ │ /detect_ai   │ │ /usage       │   │
    │  └────────────┘ └──────────────┘ └──────────────┘   │
    │                                                     │
    │  app.state: settings, stores, plans, services       │
    └─────────────────────────────────────────────────────┘

Error Body:
    Every failure answers {"success": false, "message": ..., "error"?: ...,
    "request_id": ...}.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, the server still starts)
    3. Log the plan table
    4. Create tables when the SQL stores are active (best effort)

    Shutdown:
    1. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import Settings, settings
from app.database import (
    build_engine,
    build_session_factory,
    create_tables,
    dispose_engine,
    engine as default_engine,
)
from app.exceptions import (
    AuthenticationError,
    InkwellError,
    NotFoundError,
    PaymentRequiredError,
    PersistenceError,
    ProcessingError,
    RateLimitExceededError,
    UnknownPlanError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.plans import PlanPolicy
from app.repositories.base import Stores
from app.repositories.memory import build_memory_stores
from app.repositories.sql import build_sql_stores
from app.routes import auth, health, payment, processing, usage
from app.services.auth_service import AuthService
from app.services.detector import build_detector
from app.services.humanizer import build_humanizer
from app.services.payment_service import PaymentService
from app.services.processing_service import ProcessingService
from app.services.transform_base import Detector, Humanizer
from app.services.usage_service import UsageService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings = settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings
    stores: Stores = app.state.stores

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config)
    logger.info("=" * 60)
    logger.info("Inkwell Backend starting up (%s)...", config.environment)

    try:
        config.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Available plans:")
    for name, plan in config.plans.items():
        logger.info("  - %s: %d words per round (KES %d)", name, plan.word_limit, plan.price)

    logger.info("Store backend: %s", stores.backend)
    if stores.backend == "sql" and app.state.engine is not None and config.db_create_tables:
        try:
            await create_tables(app.state.engine)
            logger.info("Database tables ready")
        except Exception as e:
            # Echo and health keep serving; accounting writes degrade to logged warnings
            logger.error("Could not create database tables: %s", e)

    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Inkwell Backend shutting down...")
    if app.state.engine is not None:
        await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    content.update(extra)
    content["request_id"] = request_id_var.get("") or None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI, config: Settings) -> None:
    """
    Map exception types to HTTP status codes.

    Handler hierarchy:
        ValidationError / UnknownPlanError / RequestValidationError → 400
        AuthenticationError     → 401
        PaymentRequiredError    → 403 (paymentRequired: true)
        NotFoundError, unknown route → 404
        RateLimitExceededError  → 429
        ProcessingError         → 500 with the transform's error detail
        PersistenceError        → 500 generic message
        InkwellError (base)     → 500
        Exception (fallback)    → 500, detail only outside production

    Stack traces and store context are logged server-side, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.message)

    @app.exception_handler(UnknownPlanError)
    async def handle_unknown_plan(request: Request, exc: UnknownPlanError):
        logger.warning("[%s] Unknown plan: %r", request_id_var.get(""), exc.plan)
        return _error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = None
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            detail = f"{location}: {first.get('msg', 'invalid')}"
        return _error_response(400, "Invalid request body", error=detail)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(request: Request, exc: AuthenticationError):
        logger.info("[%s] Unauthenticated: %s", request_id_var.get(""), exc.message)
        return _error_response(401, exc.message)

    @app.exception_handler(PaymentRequiredError)
    async def handle_payment_required(request: Request, exc: PaymentRequiredError):
        return _error_response(403, exc.message, paymentRequired=True)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(404, "API endpoint not found")
        return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429, exc.message, headers={"Retry-After": str(exc.retry_after)}
        )

    @app.exception_handler(ProcessingError)
    async def handle_processing_error(request: Request, exc: ProcessingError):
        logger.error("[%s] %s: %s", request_id_var.get(""), exc.message, exc.error)
        return _error_response(500, exc.message, error=exc.error)

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error(
            "[%s] Persistence error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "An internal error occurred. Please try again later.")

    @app.exception_handler(InkwellError)
    async def handle_inkwell_error(request: Request, exc: InkwellError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return _error_response(500, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "An unexpected error occurred",
            error=None if config.is_production else str(exc),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Settings = settings,
    stores: Optional[Stores] = None,
    humanizer: Optional[Humanizer] = None,
    detector: Optional[Detector] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        config:    Settings to run with (module-level settings by default)
        stores:    Explicit stores. When omitted, STORE_BACKEND picks the SQL
                   stores (on the configured database) or in-memory stores.
        humanizer: Override the humanizer chosen from config
        detector:  Override the detector chosen from config
        engine:    Engine behind explicit SQL stores, for table creation and
                   the health probe
    """
    app = FastAPI(
        title="Inkwell API",
        description=(
            "Plan-gated text humanizing and AI-content detection with "
            "per-account usage accounting."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Stores ────────────────────────────────────────────────────────────
    if stores is None:
        if config.store_backend == "memory":
            stores = build_memory_stores()
        else:
            engine = (
                default_engine
                if config.database_url == settings.database_url
                else build_engine(config)
            )
            stores = build_sql_stores(build_session_factory(engine))

    plans = PlanPolicy(config.plans)

    # ── Services ──────────────────────────────────────────────────────────
    app.state.settings = config
    app.state.engine = engine
    app.state.stores = stores
    app.state.plans = plans
    app.state.auth_service = AuthService(stores.accounts, plans, config)
    app.state.processing_service = ProcessingService(
        accounts=stores.accounts,
        ledger=stores.ledger,
        plans=plans,
        humanizer=humanizer or build_humanizer(config),
        detector=detector or build_detector(config),
    )
    app.state.payment_service = PaymentService(stores.accounts, stores.transactions, plans)
    app.state.usage_service = UsageService(stores.ledger)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, config=config)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, config)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(processing.router)
    app.include_router(payment.router)
    app.include_router(usage.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
