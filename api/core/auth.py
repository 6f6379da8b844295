"""OIDC bearer-token authentication.

Provides:
- Shared httpx client for the identity provider
- Token introspection (RFC 7662) with circuit breaker protection and caching
- FastAPI dependencies resolving the OIDC user and the internal LoggedUser

Circuit Breaker:
- Opens after 5 consecutive introspection infrastructure failures
- Fails fast for 60 seconds when open (-> 503)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Annotated, Any

import httpx
from circuitbreaker import CircuitBreakerError, circuit
from fastapi import Depends, HTTPException, Request

from core.cache import get_cached_introspection, set_cached_introspection
from core.config import get_settings
from core.database import DbSession
from core.logger import get_logger
from core.permissions import LoggedUser, get_highest_role, get_permissions
from core.wide_event import set_wide_event_fields
from services.user_service import find_user_by_external_provider

logger = get_logger(__name__)

_CIRCUIT_NAME = "oidc_introspection"
_CIRCUIT_FAILURE_THRESHOLD = 5
_CIRCUIT_RECOVERY_TIMEOUT = 60

_oidc_http_client: httpx.AsyncClient | None = None
_oidc_client_lock = asyncio.Lock()


class OIDCUnavailable(Exception):
    """The identity provider could not answer (network error or 5xx)."""


@dataclass(frozen=True)
class IntrospectionResult:
    active: bool
    sub: str | None = None
    name: str | None = None
    email: str | None = None
    roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class OIDCUser:
    sub: str
    provider: str
    name: str | None = None
    email: str | None = None
    roles: list[str] = field(default_factory=list)


async def get_oidc_client() -> httpx.AsyncClient:
    global _oidc_http_client

    if _oidc_http_client is not None and not _oidc_http_client.is_closed:
        return _oidc_http_client

    async with _oidc_client_lock:
        if _oidc_http_client is not None and not _oidc_http_client.is_closed:
            return _oidc_http_client

        settings = get_settings()
        _oidc_http_client = httpx.AsyncClient(
            timeout=settings.http_timeout,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )
        return _oidc_http_client


async def close_oidc_client() -> None:
    """Called on application shutdown."""
    global _oidc_http_client
    if _oidc_http_client is not None and not _oidc_http_client.is_closed:
        await _oidc_http_client.aclose()
    _oidc_http_client = None


def _extract_roles(claim: Any) -> tuple[str, ...]:
    """Zitadel sends a {role: {orgId: domain}} mapping, others a plain list."""
    if isinstance(claim, dict):
        return tuple(claim.keys())
    if isinstance(claim, list):
        return tuple(str(role) for role in claim)
    return ()


@circuit(
    failure_threshold=_CIRCUIT_FAILURE_THRESHOLD,
    recovery_timeout=_CIRCUIT_RECOVERY_TIMEOUT,
    expected_exception=(OIDCUnavailable,),
    name=_CIRCUIT_NAME,
)
async def _introspect_with_circuit_breaker(token: str) -> dict[str, Any]:
    settings = get_settings()
    client = await get_oidc_client()
    try:
        response = await client.post(
            settings.oidc_introspection_url,
            data={"token": token},
            auth=(settings.oidc_client_id, settings.oidc_client_secret),
        )
    except httpx.HTTPError as e:
        raise OIDCUnavailable(str(e)) from e

    if response.status_code >= 500:
        raise OIDCUnavailable(f"introspection returned {response.status_code}")
    response.raise_for_status()
    return response.json()


async def introspect_access_token(token: str) -> IntrospectionResult:
    """Introspect the token, answering from cache when possible.

    Raises:
        CircuitBreakerError: the circuit is open.
        OIDCUnavailable: the identity provider failed.
    """
    cached = get_cached_introspection(token)
    if cached is not None:
        return cached

    payload = await _introspect_with_circuit_breaker(token)
    result = IntrospectionResult(
        active=bool(payload.get("active")),
        sub=payload.get("sub"),
        name=payload.get("name"),
        email=payload.get("email"),
        roles=_extract_roles(payload.get(get_settings().oidc_roles_claim)),
    )
    set_cached_introspection(token, result)
    return result


def _bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_oidc_user(request: Request) -> OIDCUser:
    """Raises 401 for a missing or inactive token, 503 if the provider is down."""
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        result = await introspect_access_token(token)
    except CircuitBreakerError:
        set_wide_event_fields(auth_error="circuit_open")
        raise HTTPException(
            status_code=503, detail="Authentication temporarily unavailable"
        ) from None
    except (OIDCUnavailable, httpx.HTTPStatusError) as e:
        logger.warning("auth.introspection.failed", error=str(e))
        set_wide_event_fields(auth_error="introspection_failed")
        raise HTTPException(
            status_code=503, detail="Authentication temporarily unavailable"
        ) from e

    if not result.active or not result.sub:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return OIDCUser(
        sub=result.sub,
        provider=get_settings().oidc_provider_name,
        name=result.name,
        email=result.email,
        roles=list(result.roles),
    )


OidcUserDep = Annotated[OIDCUser, Depends(get_oidc_user)]


async def get_logged_user(
    request: Request, db: DbSession, oidc_user: OidcUserDep
) -> LoggedUser:
    """Raises 403 when the identity has no internal account or no role.

    Sets request.state.user_id for rate limiting and the wide event.
    """
    role = get_highest_role(oidc_user.roles)
    if role is None:
        raise HTTPException(status_code=403, detail="No role granted")

    user = await find_user_by_external_provider(db, oidc_user.provider, oidc_user.sub)
    if user is None:
        raise HTTPException(status_code=403, detail="User not registered")

    request.state.user_id = user.id
    set_wide_event_fields(user_id=user.id, user_role=role.value)
    return LoggedUser(id=user.id, role=role, permissions=get_permissions(role))


LoggedUserDep = Annotated[LoggedUser, Depends(get_logged_user)]
