"""Observability: OpenTelemetry tracing."""

from warehouse_authz.core.observability.tracing import (
    instrument_sqlalchemy,
    setup_tracing,
    shutdown_tracing,
)


__all__ = [
    "instrument_sqlalchemy",
    "setup_tracing",
    "shutdown_tracing",
]
