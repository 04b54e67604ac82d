"""Account endpoints: creation, login and the authenticated user views.

POST /v1/users                  create account (whitelisted origins only)
POST /v1/users/login/{user_id}  exchange id + username + password for a token
GET  /v1/users/{user_id}        public info of any user (session required)
PUT  /v1/users/{user_id}        rename yourself (session required)
GET  /v1/ping                   token smoke test

Renaming invalidates the caller's outstanding tokens: the verifier
compares the token's username claim against the directory, so the
client has to log in again with the new name.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from shoplist_server.api.dependencies import Auth, require_allowed_ip, require_user
from shoplist_server.models.principal import Principal
from shoplist_server.models.user import User
from shoplist_server.services import auth_service
from shoplist_server.services.errors import SigningFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["users"])


# --- Request / Response schemas -------------------------------------------


class AccountIn(BaseModel):
    onlineId: int = 0
    username: str
    password: str


class LoginIn(BaseModel):
    onlineId: int
    username: str
    password: str


class UserOut(BaseModel):
    onlineId: int
    username: str
    created: datetime | None = None
    lastLogin: datetime | None = None

    @staticmethod
    def from_user(user: User) -> UserOut:
        return UserOut(
            onlineId=user.id,
            username=user.username,
            created=user.created,
            lastLogin=user.last_login,
        )


class RenameIn(BaseModel):
    username: str = Field(min_length=1)


class TokenOut(BaseModel):
    token: str


class PingOut(BaseModel):
    status: str
    currentTime: datetime


# --- POST /v1/users --------------------------------------------------------


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountIn,
    auth: Auth,
    client_ip: Annotated[str, Depends(require_allowed_ip)],
) -> UserOut:
    if payload.onlineId != 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="onlineId must not be set on account creation",
        )
    username = payload.username.strip()
    if not username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="username and password are required",
        )

    password_hash = auth_service.hash_password(payload.password)
    user = auth.users.create_user(username, password_hash)
    logger.info("User created  user_id=%s from=%s", user.id, client_ip)
    return UserOut.from_user(user)


# --- POST /v1/users/login/{user_id} ----------------------------------------


@router.post("/users/login/{user_id}", response_model=TokenOut)
def login(user_id: int, payload: LoginIn, auth: Auth) -> TokenOut:
    if payload.onlineId != user_id:
        logger.warning(
            "Login rejected: path id=%s body id=%s", user_id, payload.onlineId
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    user = auth_service.authenticate_user(
        auth.users, user_id, payload.username, payload.password
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    try:
        token = auth.issuer.issue(user.id, user.username)
    except SigningFailure:
        logger.exception("Token signing failed for user=%s", user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token generation failed",
        ) from None

    auth.users.update_last_login(user.id)
    logger.info("Login succeeded  user_id=%s", user.id)
    return TokenOut(token=token)


# --- authenticated views ---------------------------------------------------


@router.get("/users/{user_id}", response_model=UserOut)
def get_user_info(
    user_id: int,
    auth: Auth,
    _principal: Annotated[Principal, Depends(require_user)],
) -> UserOut:
    user = auth.users.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return UserOut(onlineId=user.id, username=user.username)


@router.put("/users/{user_id}", response_model=UserOut)
def rename_user(
    user_id: int,
    payload: RenameIn,
    auth: Auth,
    principal: Annotated[Principal, Depends(require_user)],
) -> UserOut:
    if principal.user_id != user_id:
        logger.warning("User %s tried to modify user %s", principal.user_id, user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Cannot modify other users"
        )
    user = auth.users.update_username(user_id, payload.username.strip())
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    logger.info("User renamed  user_id=%s", user_id)
    return UserOut.from_user(user)


@router.get("/ping", response_model=PingOut)
def ping(principal: Annotated[Principal, Depends(require_user)]) -> PingOut:
    logger.debug("Ping from user=%s", principal.user_id)
    return PingOut(status="success", currentTime=datetime.now(UTC))
