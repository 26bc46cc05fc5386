"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from warehouse_authz import __version__
from warehouse_authz.api import api_router
from warehouse_authz.config import settings
from warehouse_authz.core.auth import IdentityContextMiddleware, RequestIdMiddleware
from warehouse_authz.core.cache import close_redis_pool
from warehouse_authz.core.database import build_engine, build_session_factory
from warehouse_authz.core.errors import register_exception_handlers
from warehouse_authz.core.logging import RequestLoggingMiddleware
from warehouse_authz.core.observability import (
    instrument_sqlalchemy,
    setup_tracing,
    shutdown_tracing,
)
from warehouse_authz.core.permissions import AuthorizationEngine, SQLPermissionStore


# Configure structlog
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        (
            structlog.processors.JSONRenderer()
            if settings.is_production
            else structlog.dev.ConsoleRenderer()
        ),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Builds the database-backed AuthorizationEngine unless one was supplied
    to create_app, and releases its connections on shutdown.
    """
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    db_engine = None
    if getattr(app.state, "authorization_engine", None) is None:
        db_engine = build_engine()
        instrument_sqlalchemy(db_engine)
        store = SQLPermissionStore(build_session_factory(db_engine))
        app.state.authorization_engine = AuthorizationEngine.from_settings(
            store, settings
        )
        logger.info(
            "authorization_engine_ready",
            permission_mode=settings.permission_mode,
            cache_backend=settings.permission_cache_backend,
            cache_ttl_seconds=settings.permission_cache_ttl_seconds,
        )

    yield

    logger.info("application_shutdown")

    shutdown_tracing()

    if settings.permission_cache_backend == "redis":
        await close_redis_pool()
        logger.info("redis_pool_closed")

    if db_engine is not None:
        await db_engine.dispose()
        logger.info("database_engine_disposed")


def create_app(authorization_engine: AuthorizationEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        authorization_engine: Engine to use instead of the database-backed
            one built at startup

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Effective permission resolution and warehouse scoping",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )
    app.state.authorization_engine = authorization_engine

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # Starlette runs the last added middleware first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(IdentityContextMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(api_router)

    setup_tracing(app)

    return app
