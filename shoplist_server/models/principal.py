from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a verified session token.

    Carried through the request via FastAPI's dependency system.
    Route handlers receive this instead of reading headers themselves.
    """

    user_id: int
    username: str
    admin: bool = False
