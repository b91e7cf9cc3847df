"""Auth0 JWT verification and tenant-scoped user resolution."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Annotated, Any

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import AppEnvironment, get_settings
from app.core.errors import ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

INVALID_OR_EXPIRED_TOKEN_MSG = "Invalid or expired token"
LOCAL_DEV_ORG_ID = "local-dev-org"

_http_client: httpx.AsyncClient | None = None
_jwks_cache: dict[str, Any] | None = None
_cache_time: datetime | None = None
_cache_lock = asyncio.Lock()

_optional_security = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """Authenticated caller, bound to a single tenant (organisation)."""

    user_id: str
    org_id: str
    email: str | None = None
    name: str | None = None
    permissions: list[str] = []

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


STRATEGY_READ = "strategy:read"
STRATEGY_RUN = "strategy:run"


async def get_async_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0))
    return _http_client


async def close_async_http_client() -> None:
    global _http_client
    if _http_client is not None:
        try:
            if not _http_client.is_closed:
                await _http_client.aclose()
        except (RuntimeError, httpx.HTTPError) as e:
            logger.warning("Error closing HTTP client", exc_info=True, extra={"error": str(e)})
        finally:
            _http_client = None


async def fetch_jwks() -> dict[str, Any]:
    """Fetch the Auth0 JWKS, serving a stale copy when the refresh fails."""
    global _jwks_cache, _cache_time

    settings = get_settings()
    now = datetime.now(UTC)

    async with _cache_lock:
        if _jwks_cache is not None and _cache_time is not None:
            if (now - _cache_time).total_seconds() < settings.auth0.jwks_cache_ttl:
                return _jwks_cache

        client = await get_async_http_client()
        try:
            response = await client.get(settings.auth0.jwks_url)
            response.raise_for_status()
            _jwks_cache = response.json()
            _cache_time = now
            return _jwks_cache
        except (httpx.HTTPError, ConnectionError) as e:
            logger.error("Failed to fetch JWKS", exc_info=True, extra={"error": str(e)})
            if _jwks_cache is not None:
                logger.warning("Using stale JWKS cache")
                return _jwks_cache
            raise ValidationError(
                "Unable to verify token: authentication service unavailable"
            ) from e


def _find_signing_key(jwks: dict[str, Any], kid: str | None) -> dict[str, Any] | None:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return {field: key[field] for field in ("kty", "kid", "use", "n", "e") if field in key}
    return None


async def verify_token_async(token: str) -> dict[str, Any]:
    settings = get_settings()

    try:
        jwks = await fetch_jwks()
        header = jwt.get_unverified_header(token)
        rsa_key = _find_signing_key(jwks, header.get("kid"))
        if rsa_key is None:
            raise ValidationError(INVALID_OR_EXPIRED_TOKEN_MSG)

        return jwt.decode(
            token,
            rsa_key,
            algorithms=settings.auth0.algorithms_list,
            audience=settings.auth0.audience,
            issuer=settings.auth0.issuer_url,
        )
    except jwt.ExpiredSignatureError:
        raise ValidationError(INVALID_OR_EXPIRED_TOKEN_MSG) from None
    except JWTError as e:
        logger.warning("JWT verification failed", extra={"error": str(e)})
        raise ValidationError(INVALID_OR_EXPIRED_TOKEN_MSG) from e


def _create_bypass_user() -> AuthenticatedUser:
    """Fixed user for local development with JWT validation disabled."""
    return AuthenticatedUser(
        user_id="local-dev-user",
        org_id=LOCAL_DEV_ORG_ID,
        email="local-dev@example.com",
        name="Local Development User",
        permissions=[STRATEGY_READ, STRATEGY_RUN],
    )


def user_from_claims(payload: dict[str, Any], tenant_claim: str) -> AuthenticatedUser:
    """Build the caller from verified claims; a token without a tenant is rejected."""
    org_id = payload.get(tenant_claim)
    if not org_id:
        raise ValidationError(
            "Token carries no tenant claim",
            details={"claim": tenant_claim},
        )
    return AuthenticatedUser(
        user_id=payload.get("sub", ""),
        org_id=str(org_id),
        email=payload.get("email"),
        name=payload.get("name"),
        permissions=payload.get("permissions", []),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_optional_security),
) -> AuthenticatedUser:
    settings = get_settings()

    if settings.security.skip_jwt_validation:
        if settings.app.env != AppEnvironment.LOCAL:
            logger.error(
                "Refusing JWT bypass outside local environment",
                extra={"app_env": settings.app.env.value},
            )
            raise ValidationError("JWT bypass is only allowed in local environment")
        return _create_bypass_user()

    if credentials is None:
        raise ValidationError("Missing authorization header")

    payload = await verify_token_async(credentials.credentials)
    return user_from_claims(payload, settings.auth0.tenant_claim)


def require_scope(required_scope: str):
    """Dependency factory that enforces a specific scope."""

    def scope_checker(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not user.has_permission(required_scope):
            logger.warning(
                "Access denied - missing scope",
                extra={"user_id": user.user_id, "required_scope": required_scope},
            )
            raise ForbiddenError(
                "Insufficient permissions",
                details={"required_scope": required_scope},
            )
        return user

    return scope_checker


RequireStrategyRead = Annotated[AuthenticatedUser, Depends(require_scope(STRATEGY_READ))]
RequireStrategyRun = Annotated[AuthenticatedUser, Depends(require_scope(STRATEGY_RUN))]
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
