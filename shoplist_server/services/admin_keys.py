"""Admin API key verification.

An admin key is a JWT sent in the ``x-api-key`` header.  It is signed
with its own secret (not the session secret) and carries::

    {"key": "<master key>", "validUntil": "<RFC 3339>", "admin": true}

Holding a correctly signed key is not enough: the embedded ``key`` must
also equal the value in the server-local master-key file.  Operators must
therefore keep the admin secret file and the master-key file in sync;
``mint_admin_key`` produces a key that satisfies both.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from shoplist_server.models.claims import AdminKeyClaims
from shoplist_server.services import jwt_codec
from shoplist_server.services.errors import (
    AuthError,
    InsufficientPrivilege,
    InvalidAdminKey,
    KeyMismatch,
)
from shoplist_server.services.secret_store import SecretStore

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AdminKeyVerifier:
    def __init__(
        self,
        admin_secret_store: SecretStore,
        master_key_store: SecretStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._admin_secret_store = admin_secret_store
        self._master_key_store = master_key_store
        self._clock = clock

    def verify(self, raw_key: str | None) -> AdminKeyClaims:
        if raw_key is None or not raw_key.strip():
            raise InvalidAdminKey(f"no {API_KEY_HEADER} header")
        raw_key = raw_key.strip()

        secret = self._admin_secret_store.current()
        try:
            jwt_codec.require_hmac(raw_key)
            payload = jwt_codec.decode(
                raw_key, secret.value, require=["key", "validUntil"]
            )
            claims = AdminKeyClaims.from_payload(payload)
        except AuthError as e:
            raise InvalidAdminKey(f"{e.reason}: {e}") from None
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidAdminKey(f"unexpected claims: {e}") from None

        if self._clock() > claims.valid_until:
            raise InvalidAdminKey(
                f"admin key expired at {claims.valid_until.isoformat()}"
            )
        if claims.admin is not True:
            raise InsufficientPrivilege("admin claim is not set")

        master = self._master_key_store.current()
        if not hmac.compare_digest(claims.key.encode(), master.value.encode()):
            raise KeyMismatch("embedded key does not match the master key")

        logger.debug("Admin key accepted valid_until=%s", claims.valid_until)
        return claims


def mint_admin_key(
    admin_secret_store: SecretStore,
    master_key_store: SecretStore,
    *,
    valid_until: datetime,
) -> str:
    """Sign a fresh admin key for operators (see scripts/mint_admin_key.py)."""
    claims = AdminKeyClaims(
        key=master_key_store.current().value,
        valid_until=valid_until,
        admin=True,
    )
    return jwt_codec.encode(claims.to_payload(), admin_secret_store.current().value)
