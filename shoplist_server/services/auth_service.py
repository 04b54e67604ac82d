from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from shoplist_server.models.user import User
from shoplist_server.repos.user_repo import UserDirectory

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def authenticate_user(
    directory: UserDirectory, user_id: int, username: str, password: str
) -> User | None:
    """Check a login attempt.  Id, username and password must all match."""
    user = directory.get_user(user_id)
    if user is None:
        logger.warning("Login rejected: user=%s not found", user_id)
        return None
    if user.username != username:
        logger.warning("Login rejected: user=%s username does not match", user_id)
        return None
    if not verify_password(password, user.password_hash):
        logger.warning("Login rejected: user=%s wrong password", user_id)
        return None
    return user
