"""The authentication object graph, built once per process.

Everything request handlers need to authenticate lives on one
AuthComponents instance stored at ``app.state.auth``; there are no
module-level stores, ledgers or allow-lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from shoplist_server.core.config import Settings
from shoplist_server.repos.user_repo import UserDirectory
from shoplist_server.services.admin_keys import AdminKeyVerifier
from shoplist_server.services.errors import SecretExpired, SecretStoreError
from shoplist_server.services.ip_allowlist import IPAllowList
from shoplist_server.services.secret_store import SecretStore
from shoplist_server.services.token_ledger import TokenLedger
from shoplist_server.services.token_service import TokenIssuer, TokenVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthComponents:
    users: UserDirectory
    session_secret: SecretStore
    admin_secret: SecretStore
    master_key: SecretStore
    ledger: TokenLedger
    ip_allowlist: IPAllowList
    issuer: TokenIssuer
    verifier: TokenVerifier
    admin_keys: AdminKeyVerifier


def build_auth_components(settings: Settings, users: UserDirectory) -> AuthComponents:
    """Load every secret, compact the ledger and wire the verifiers.

    Raises SecretNotProvisioned / SecretFileMalformed / SecretExpired when a
    secret file is unusable, and ValueError for a malformed IP whitelist.
    Callers treat any of these as fatal: the process must not serve.
    """
    session_secret = SecretStore(settings.jwt_secret_file, label="JWT")
    admin_secret = SecretStore(settings.admin_secret_file, label="admin API")
    master_key = SecretStore(settings.admin_key_file, label="admin master key")

    # Expiry is part of the startup precondition, not just provisioning.
    # Check all three before failing so a first run writes every placeholder.
    failures: list[Exception] = []
    for store in (session_secret, admin_secret, master_key):
        try:
            store.load()
            store.current()
        except (SecretStoreError, SecretExpired) as e:
            logger.critical("Unusable %s secret: %s", store.label, e)
            failures.append(e)
    if failures:
        raise failures[0]

    ledger = TokenLedger(settings.token_ledger_file, session_secret)
    ledger.load()

    components = AuthComponents(
        users=users,
        session_secret=session_secret,
        admin_secret=admin_secret,
        master_key=master_key,
        ledger=ledger,
        ip_allowlist=IPAllowList.from_file(settings.ip_whitelist_file),
        issuer=TokenIssuer(
            session_secret,
            ledger,
            timeout=timedelta(seconds=settings.token_timeout_seconds),
        ),
        verifier=TokenVerifier(
            session_secret,
            ledger,
            users,
            allow_bare_token=settings.allow_bare_token,
        ),
        admin_keys=AdminKeyVerifier(admin_secret, master_key),
    )
    logger.info(
        "Authentication ready  ledger=%d tokens whitelist=%d entries "
        "token_timeout=%ds bare_tokens=%s",
        len(ledger),
        len(components.ip_allowlist),
        settings.token_timeout_seconds,
        "allowed" if settings.allow_bare_token else "rejected",
    )
    return components
