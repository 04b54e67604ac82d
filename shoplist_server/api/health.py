"""Health endpoint.

/health answers "is this process alive", plus the state of the things
authentication depends on:

  status:  "ok", or "degraded" when a signing secret has expired
  checks:  per-secret validity and the token ledger size

It returns 200 even when degraded; the status field carries the
verdict.  Secret values and tokens never appear in the body.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from shoplist_server.api.dependencies import Auth
from shoplist_server.services.errors import SecretExpired, SecretStoreError
from shoplist_server.services.secret_store import SecretStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _secret_status(store: SecretStore) -> str:
    try:
        store.current()
    except SecretExpired:
        return "expired"
    except SecretStoreError:
        logger.exception("%s secret unreadable during health check", store.label)
        return "unavailable"
    return "ok"


@router.get("/health")
def health(auth: Auth) -> dict:
    checks: dict[str, object] = {
        "session_secret": _secret_status(auth.session_secret),
        "admin_secret": _secret_status(auth.admin_secret),
        "master_key": _secret_status(auth.master_key),
    }
    overall = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    checks["ledger_tokens"] = len(auth.ledger)

    return {"status": overall, "checks": checks}
