"""Relational implementation of UserDirectory."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from shoplist_server.db.tables import UserRow
from shoplist_server.models.user import User


class SqlUserDirectory:
    """Satisfies the UserDirectory Protocol via SQLAlchemy.

    Each call runs in its own short session; the directory is shared by
    every request thread.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_user(self, user_id: int) -> User | None:
        with self._session_factory() as session:
            row = session.get(UserRow, user_id)
            return _row_to_user(row) if row is not None else None

    def update_last_login(self, user_id: int) -> User | None:
        return self._update(user_id, last_login=datetime.now(UTC))

    def update_username(self, user_id: int, username: str) -> User | None:
        return self._update(user_id, username=username)

    def create_user(self, username: str, password_hash: str) -> User:
        with self._session_factory.begin() as session:
            row = UserRow(
                username=username,
                password_hash=password_hash,
                created=datetime.now(UTC),
            )
            session.add(row)
            session.flush()
            return _row_to_user(row)

    def list_users(self) -> list[User]:
        with self._session_factory() as session:
            rows = session.execute(select(UserRow).order_by(UserRow.id)).scalars()
            return [_row_to_user(row) for row in rows]

    def _update(self, user_id: int, **values: object) -> User | None:
        with self._session_factory.begin() as session:
            stmt = update(UserRow).where(UserRow.id == user_id).values(**values)
            if session.execute(stmt).rowcount == 0:
                return None
        return self.get_user(user_id)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created=_as_utc(row.created),  # type: ignore[arg-type]
        last_login=_as_utc(row.last_login),
    )
