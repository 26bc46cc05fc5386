"""Database layer - engine and session factory, base models, and mixins."""

from warehouse_authz.core.database.base import Base, IntegerIdMixin, TimestampMixin
from warehouse_authz.core.database.session import build_engine, build_session_factory


__all__ = [
    "Base",
    "IntegerIdMixin",
    "TimestampMixin",
    "build_engine",
    "build_session_factory",
]
