"""Strategy engine error hierarchy."""

from typing import Any


class StrategyEngineError(Exception):
    """Base exception for strategy engine errors."""

    code = "STRATEGY_ENGINE_INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(StrategyEngineError):
    """Invalid request parameters."""

    code = "STRATEGY_ENGINE_INVALID_REQUEST"
    status_code = 400


class NotFoundError(StrategyEngineError):
    """Case or commitment not found (or outside the caller's tenant)."""

    code = "STRATEGY_ENGINE_NOT_FOUND"
    status_code = 404


class ForbiddenError(StrategyEngineError):
    """Access forbidden due to scope/permission."""

    code = "STRATEGY_ENGINE_SCOPE_FORBIDDEN"
    status_code = 403


class DependencyError(StrategyEngineError):
    """External dependency failure (persistence layer)."""

    code = "STRATEGY_ENGINE_DEPENDENCY_FAILURE"
    status_code = 502


class InternalComputationError(StrategyEngineError):
    """The engine failed on a snapshot it should have handled.

    Carries the snapshot diagnostics needed to reproduce the failure
    offline: case id, snapshot fingerprint, collection counts and the
    reference date the run was pinned to.
    """

    code = "STRATEGY_ENGINE_INTERNAL_COMPUTATION_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        case_id: str,
        snapshot_diagnostics: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            details={
                **(details or {}),
                "case_id": case_id,
                "snapshot_diagnostics": snapshot_diagnostics or {},
            },
        )
        self.case_id = case_id
        self.snapshot_diagnostics = snapshot_diagnostics or {}


ERROR_STATUS_MAP: dict[type[StrategyEngineError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ForbiddenError: 403,
    DependencyError: 502,
    InternalComputationError: 500,
}


def get_status_code(error: StrategyEngineError) -> int:
    """Get HTTP status code for error."""
    return ERROR_STATUS_MAP.get(type(error), 500)
