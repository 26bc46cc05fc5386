"""Test factories and fakes."""

from tests.factories.store import FakePermissionStore
from tests.factories.user import auth_headers, make_user


__all__ = ["FakePermissionStore", "auth_headers", "make_user"]
