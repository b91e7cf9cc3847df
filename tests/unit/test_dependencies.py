"""Unit tests for dependencies module."""

from app.core.dependencies import (
    AuthenticatedUser,
)


def test_authenticated_user_defaults():
    user = AuthenticatedUser(user_id="test", org_id="org-1")
    assert user.user_id == "test"
    assert user.org_id == "org-1"
    assert user.email is None
    assert user.name is None
    assert user.permissions == []


def test_authenticated_user_permissions():
    user = AuthenticatedUser(
        user_id="test",
        org_id="org-1",
        permissions=["strategy:read"],
    )
    assert user.has_permission("strategy:read") is True
    assert user.has_permission("strategy:run") is False
