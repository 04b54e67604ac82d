"""Request guards: the HTTP face of the authentication core.

Each guard is a FastAPI dependency.  On success it returns the verified
identity (and stores it on ``request.state``); on failure it raises an
AuthError, which the handler registered in main.py turns into a
401/403 with a generic ``{"error": ...}`` body.  The specific reason is
logged here and counted in auth_decisions_total; it never reaches the
client.

  require_user       Authorization: Bearer <session token>
  require_admin      x-api-key admin key, then the session token as well
  require_admin_key  x-api-key admin key only (machine callers: /metrics)
  require_allowed_ip client address must be on the IP whitelist
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request

from shoplist_server.core.metrics import AUTH_DECISIONS
from shoplist_server.models.claims import AdminKeyClaims
from shoplist_server.models.principal import Principal
from shoplist_server.services.admin_keys import API_KEY_HEADER
from shoplist_server.services.auth_components import AuthComponents
from shoplist_server.services.errors import AuthError, SecretExpired

logger = logging.getLogger(__name__)


def get_auth(request: Request) -> AuthComponents:
    return request.app.state.auth


Auth = Annotated[AuthComponents, Depends(get_auth)]


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "-"


def _rejected(request: Request, guard: str, err: AuthError) -> None:
    level = logging.ERROR if isinstance(err, SecretExpired) else logging.WARNING
    logger.log(
        level,
        "%s rejected %s %s: reason=%s detail=%s",
        guard,
        request.method,
        request.url.path,
        err.reason,
        err,
        extra={"reason": err.reason, "client_ip": _client_ip(request)},
    )
    AUTH_DECISIONS.labels(result="rejected", reason=err.reason).inc()


def _allowed(guard: str) -> None:
    AUTH_DECISIONS.labels(result="allowed", reason=guard).inc()


def _verify_session(request: Request, auth: AuthComponents, guard: str) -> Principal:
    try:
        principal = auth.verifier.verify_header(request.headers.get("Authorization"))
    except AuthError as e:
        _rejected(request, guard, e)
        raise
    request.state.principal = principal
    logger.debug(
        "Token validated for user=%s",
        principal.user_id,
        extra={"user_id": principal.user_id},
    )
    return principal


def _verify_admin_key(
    request: Request, auth: AuthComponents, guard: str
) -> AdminKeyClaims:
    try:
        claims = auth.admin_keys.verify(request.headers.get(API_KEY_HEADER))
    except AuthError as e:
        _rejected(request, guard, e)
        raise
    request.state.admin_key = claims
    return claims


def require_user(request: Request, auth: Auth) -> Principal:
    """Session guard for ordinary authenticated routes."""
    principal = _verify_session(request, auth, "require_user")
    _allowed("require_user")
    return principal


def require_admin(request: Request, auth: Auth) -> Principal:
    """Admin guard: a valid admin key AND a valid session.

    The key is checked first so a request without it never reaches the
    user lookup.
    """
    _verify_admin_key(request, auth, "require_admin")
    principal = _verify_session(request, auth, "require_admin")
    logger.info("Admin access granted to user=%s", principal.user_id)
    _allowed("require_admin")
    return principal


def require_admin_key(request: Request, auth: Auth) -> AdminKeyClaims:
    """Admin-key-only guard for callers without a user session."""
    claims = _verify_admin_key(request, auth, "require_admin_key")
    _allowed("require_admin_key")
    return claims


def require_allowed_ip(request: Request, auth: Auth) -> str:
    """Restrict a route to whitelisted origins.  Returns the client address."""
    ip = _client_ip(request)
    try:
        auth.ip_allowlist.check(ip)
    except AuthError as e:
        _rejected(request, "require_allowed_ip", e)
        raise
    _allowed("require_allowed_ip")
    return ip
