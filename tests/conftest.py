from __future__ import annotations

import json
import secrets
import sys
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import shoplist_server` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shoplist_server.core.config import Settings  # noqa: E402
from shoplist_server.main import create_app  # noqa: E402
from shoplist_server.models.user import User  # noqa: E402
from shoplist_server.repos.user_repo import InMemoryUserDirectory  # noqa: E402
from shoplist_server.services import auth_service  # noqa: E402
from shoplist_server.services.admin_keys import mint_admin_key  # noqa: E402
from shoplist_server.services.auth_components import AuthComponents  # noqa: E402
from shoplist_server.services.secret_store import SecretStore  # noqa: E402
from shoplist_server.services.token_ledger import TokenLedger  # noqa: E402

TEST_USERNAME = "tee"
TEST_PASSWORD = "correct-horse-battery"


def write_secret(
    path: Path,
    value: str | None = None,
    *,
    valid_for: timedelta = timedelta(days=30),
) -> str:
    """Write a secret file in the on-disk shape and return the value."""
    value = value if value is not None else secrets.token_urlsafe(64)
    path.write_text(
        json.dumps(
            {
                "Secret": value,
                "ValidUntil": (datetime.now(UTC) + valid_for).isoformat(),
            }
        ),
        encoding="utf-8",
    )
    return value


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    write_secret(tmp_path / "jwtSecret.json")
    write_secret(tmp_path / "apiSecret.json")
    write_secret(tmp_path / "apiKey.json")
    # TestClient reports its client address as "testclient".
    (tmp_path / "whitelisted_ips.json").write_text(json.dumps(["testclient"]))
    return Settings(
        app_env="test",
        log_level="debug",
        log_json=False,
        port=46152,
        database_url=None,
        jwt_secret_file=str(tmp_path / "jwtSecret.json"),
        admin_secret_file=str(tmp_path / "apiSecret.json"),
        admin_key_file=str(tmp_path / "apiKey.json"),
        token_ledger_file=str(tmp_path / "tokens.txt"),
        ip_whitelist_file=str(tmp_path / "whitelisted_ips.json"),
    )


@pytest.fixture
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def user(users: InMemoryUserDirectory) -> User:
    return users.create_user(TEST_USERNAME, auth_service.hash_password(TEST_PASSWORD))


@pytest.fixture
def client(settings: Settings, users: InMemoryUserDirectory) -> Iterator[TestClient]:
    # Entering the context runs the lifespan, which loads the secrets.
    with TestClient(create_app(settings, users)) as c:
        yield c


@pytest.fixture
def auth(client: TestClient) -> AuthComponents:
    return client.app.state.auth  # type: ignore[attr-defined]


@pytest.fixture
def token(auth: AuthComponents, user: User) -> str:
    return auth.issuer.issue(user.id, user.username)


@pytest.fixture
def admin_key(auth: AuthComponents) -> str:
    return mint_admin_key(
        auth.admin_secret,
        auth.master_key,
        valid_until=datetime.now(UTC) + timedelta(days=1),
    )


# ---------------------------------------------------------------------------
# Service-level helpers (no app)
# ---------------------------------------------------------------------------


@pytest.fixture
def secret_store(tmp_path: Path) -> SecretStore:
    write_secret(tmp_path / "session.json")
    return SecretStore(tmp_path / "session.json")


@pytest.fixture
def ledger(tmp_path: Path, secret_store: SecretStore) -> TokenLedger:
    return TokenLedger(tmp_path / "ledger.txt", secret_store)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
