from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shoplist_server.api.dependencies import Auth, require_admin
from shoplist_server.models.principal import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class AdminUserOut(BaseModel):
    onlineId: int
    username: str
    created: datetime
    lastLogin: datetime | None = None


@router.get("/users", response_model=list[AdminUserOut])
def admin_list_users(
    auth: Auth,
    principal: Annotated[Principal, Depends(require_admin)],
) -> list[AdminUserOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    return [
        AdminUserOut(
            onlineId=u.id,
            username=u.username,
            created=u.created,
            lastLogin=u.last_login,
        )
        for u in auth.users.list_users()
    ]
