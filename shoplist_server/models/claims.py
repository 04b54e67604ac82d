"""Token payload schemas.

Both payloads are explicit dataclasses with their own to_payload /
from_payload so the wire field names are fixed here and nowhere else.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from shoplist_server.models.secret import parse_timestamp

ISSUER = "shopping-list-server"

# Claims that must be present on every session token.
REQUIRED_SESSION_CLAIMS = ["id", "username", "iat", "nbf", "exp", "iss"]


@dataclass(frozen=True, slots=True)
class Claims:
    user_id: int
    username: str
    issued_at: datetime
    not_before: datetime
    expires_at: datetime
    admin: bool = False
    issuer: str = ISSUER
    token_id: str = ""

    @staticmethod
    def new(
        *,
        user_id: int,
        username: str,
        now: datetime,
        timeout: timedelta,
        admin: bool = False,
    ) -> Claims:
        return Claims(
            user_id=user_id,
            username=username,
            issued_at=now,
            not_before=now,
            expires_at=now + timeout,
            admin=admin,
            token_id=str(uuid.uuid4()),
        )

    def to_payload(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "admin": self.admin,
            "iat": self.issued_at,
            "nbf": self.not_before,
            "exp": self.expires_at,
            "iss": self.issuer,
            "jti": self.token_id,
        }

    @staticmethod
    def from_payload(payload: dict) -> Claims:
        """Inverse of to_payload for a payload PyJWT already verified.

        Raises TypeError/KeyError on a payload of the wrong shape.
        """
        user_id = payload["id"]
        username = payload["username"]
        admin = payload.get("admin", False)
        # bool is an int subclass; a token claiming id=true is not an id.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TypeError("id claim must be an integer")
        if not isinstance(username, str) or not username:
            raise TypeError("username claim must be a non-empty string")
        if not isinstance(admin, bool):
            raise TypeError("admin claim must be a boolean")
        return Claims(
            user_id=user_id,
            username=username,
            issued_at=_from_numeric_date(payload["iat"]),
            not_before=_from_numeric_date(payload["nbf"]),
            expires_at=_from_numeric_date(payload["exp"]),
            admin=admin,
            issuer=payload["iss"],
            token_id=str(payload.get("jti", "")),
        )


def _from_numeric_date(value: object) -> datetime:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise TypeError("NumericDate claim must be a number")
    return datetime.fromtimestamp(value, tz=UTC)


@dataclass(frozen=True, slots=True)
class AdminKeyClaims:
    """Payload of the long-lived admin API key (sent in ``x-api-key``).

    ``key`` must equal the server's master-key file; ``valid_until`` is
    checked independently of any ``exp`` claim.
    """

    key: str
    valid_until: datetime
    admin: bool

    def to_payload(self) -> dict:
        return {
            "key": self.key,
            "validUntil": self.valid_until.isoformat(),
            "admin": self.admin,
        }

    @staticmethod
    def from_payload(payload: dict) -> AdminKeyClaims:
        key = payload["key"]
        admin = payload.get("admin", False)
        if not isinstance(key, str):
            raise TypeError("key claim must be a string")
        if not isinstance(admin, bool):
            raise TypeError("admin claim must be a boolean")
        return AdminKeyClaims(
            key=key,
            valid_until=parse_timestamp(payload["validUntil"]),
            admin=admin,
        )
