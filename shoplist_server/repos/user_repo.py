from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from shoplist_server.models.user import User


class UserDirectory(Protocol):
    """Identity lookup consumed by the authentication core.

    The core only reads through this interface, except for
    update_last_login after a successful password login.
    """

    def get_user(self, user_id: int) -> User | None: ...
    def update_last_login(self, user_id: int) -> User | None: ...
    def create_user(self, username: str, password_hash: str) -> User: ...
    def list_users(self) -> list[User]: ...
    def update_username(self, user_id: int, username: str) -> User | None: ...


class InMemoryUserDirectory:
    def __init__(self) -> None:
        self._by_id: dict[int, User] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_user(self, user_id: int) -> User | None:
        return self._by_id.get(user_id)

    def update_last_login(self, user_id: int) -> User | None:
        with self._lock:
            u = self._by_id.get(user_id)
            if u is None:
                return None
            updated = replace(u, last_login=datetime.now(UTC))
            self._by_id[user_id] = updated
            return updated

    def create_user(self, username: str, password_hash: str) -> User:
        with self._lock:
            user = User.new(
                id=self._next_id, username=username, password_hash=password_hash
            )
            self._by_id[user.id] = user
            self._next_id += 1
            return user

    def list_users(self) -> list[User]:
        return sorted(self._by_id.values(), key=lambda u: u.id)

    def update_username(self, user_id: int, username: str) -> User | None:
        with self._lock:
            u = self._by_id.get(user_id)
            if u is None:
                return None
            updated = replace(u, username=username)
            self._by_id[user_id] = updated
            return updated
