from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class User:
    id: int
    username: str
    password_hash: str
    created: datetime
    last_login: datetime | None = None

    @staticmethod
    def new(*, id: int, username: str, password_hash: str) -> User:
        return User(
            id=id,
            username=username,
            password_hash=password_hash,
            created=datetime.now(UTC),
        )
