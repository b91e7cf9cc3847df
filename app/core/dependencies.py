"""Dependency injection type aliases."""

from app.core.auth import (
    AuthenticatedUser,
    CurrentUser,
    RequireStrategyRead,
    RequireStrategyRun,
)

__all__ = [
    "AuthenticatedUser",
    "CurrentUser",
    "RequireStrategyRead",
    "RequireStrategyRun",
]
