"""Session token issuance and verification (HS512).

Centralizes all session-token logic so the login route (issuance) and
api/dependencies.py (validation) share one secret store, one ledger and
one claims schema.

Verification order, first failure wins:

  1. header  -> bearer string          MissingToken / MalformedToken
  2. header alg must be HMAC           MalformedToken / InvalidSignatureAlgorithm
  3. secret window, then signature     SecretExpired / BadSignature
  4. nbf / exp                         TokenNotYetValid / TokenExpired
  5. user exists, username unchanged   UnknownUser / IdentityMismatch
  6. exact token string in the ledger  TokenNotIssuedByServer
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from shoplist_server.core.metrics import TOKENS_ISSUED
from shoplist_server.models.claims import ISSUER, REQUIRED_SESSION_CLAIMS, Claims
from shoplist_server.models.principal import Principal
from shoplist_server.repos.user_repo import UserDirectory
from shoplist_server.services import jwt_codec
from shoplist_server.services.errors import (
    IdentityMismatch,
    MalformedToken,
    MissingToken,
    TokenNotIssuedByServer,
    UnknownUser,
)
from shoplist_server.services.secret_store import SecretStore
from shoplist_server.services.token_ledger import TokenLedger

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuer:
    """Mints session tokens for identities whose credentials were checked."""

    def __init__(
        self,
        secret_store: SecretStore,
        ledger: TokenLedger,
        *,
        timeout: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if timeout <= timedelta(0):
            raise ValueError("token timeout must be positive")
        self._secret_store = secret_store
        self._ledger = ledger
        self._timeout = timeout
        self._clock = clock

    @property
    def timeout(self) -> timedelta:
        return self._timeout

    def issue(self, user_id: int, username: str, *, admin: bool = False) -> str:
        """Sign a token and record it in the ledger.

        Not idempotent: every call yields a distinct token (fresh jti), so a
        user may hold several concurrent sessions.

        Raises SecretExpired or SigningFailure.
        """
        if not username:
            raise ValueError("username must be non-empty")

        secret = self._secret_store.current()
        claims = Claims.new(
            user_id=user_id,
            username=username,
            now=self._clock(),
            timeout=self._timeout,
            admin=admin,
        )
        token = jwt_codec.encode(claims.to_payload(), secret.value)
        self._ledger.append(token)
        TOKENS_ISSUED.inc()
        logger.info(
            "Token issued user=%s jti=%s expires_at=%s",
            user_id,
            claims.token_id,
            claims.expires_at.isoformat(),
        )
        return token


class TokenVerifier:
    """Decides whether a bearer string is a live session of a real user."""

    def __init__(
        self,
        secret_store: SecretStore,
        ledger: TokenLedger,
        users: UserDirectory,
        *,
        allow_bare_token: bool = False,
    ) -> None:
        self._secret_store = secret_store
        self._ledger = ledger
        self._users = users
        self._allow_bare_token = allow_bare_token

    def extract_bearer(self, authorization: str | None) -> str:
        """Pull the token out of an ``Authorization`` header value."""
        if authorization is None or not authorization.strip():
            raise MissingToken("no Authorization header")

        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == BEARER_PREFIX.lower():
            return parts[1]
        if len(parts) == 1 and self._allow_bare_token:
            return parts[0]
        raise MalformedToken("Authorization header is not 'Bearer <token>'")

    def verify_header(self, authorization: str | None) -> Principal:
        return self.verify(self.extract_bearer(authorization))

    def verify(self, token: str) -> Principal:
        jwt_codec.require_hmac(token)

        secret = self._secret_store.current()
        payload = jwt_codec.decode(
            token,
            secret.value,
            issuer=ISSUER,
            require=REQUIRED_SESSION_CLAIMS,
        )
        try:
            claims = Claims.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedToken(f"unexpected claims: {e}") from None

        user = self._users.get_user(claims.user_id)
        if user is None:
            raise UnknownUser(f"user {claims.user_id} not found")
        if user.username != claims.username:
            raise IdentityMismatch(
                f"user {claims.user_id} username differs from token claim"
            )

        if not self._ledger.contains(token):
            raise TokenNotIssuedByServer(f"jti={claims.token_id or '-'} not in ledger")

        return Principal(
            user_id=claims.user_id,
            username=claims.username,
            admin=claims.admin,
        )
