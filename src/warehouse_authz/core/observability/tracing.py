"""OpenTelemetry tracing configuration.

Instruments FastAPI requests, the SQLAlchemy engine the permission store
reads through, and Redis when it backs the permission cache. Traces are
exported only when OTLP_ENDPOINT is set, or to the console in debug mode.
"""

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from sqlalchemy.ext.asyncio import AsyncEngine

from warehouse_authz import __version__
from warehouse_authz.config import settings


log = structlog.get_logger()

_provider: TracerProvider | None = None


def setup_tracing(app: FastAPI) -> bool:
    """Configure tracing for the application.

    Returns:
        True if a span exporter was installed
    """
    global _provider

    resource = Resource.create(
        {
            "service.name": settings.app_name.lower().replace(" ", "-"),
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=settings.otlp_endpoint,
            insecure=not settings.otlp_endpoint.startswith("https"),
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        log.info("tracing_configured", exporter="otlp", endpoint=settings.otlp_endpoint)
    elif settings.debug:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("tracing_configured", exporter="console")
    else:
        log.info("tracing_disabled", reason="no OTLP_ENDPOINT configured")
        return False

    trace.set_tracer_provider(provider)
    _provider = provider

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls="health/.*,docs,redoc,openapi.json",
    )
    if settings.permission_cache_backend == "redis":
        RedisInstrumentor().instrument()
    return True


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    """Instrument the database engine once tracing is configured."""
    if _provider is None:
        return
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def shutdown_tracing() -> None:
    """Flush pending spans."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        _provider = None
