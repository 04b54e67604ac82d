"""Demo: create an account, log in and call an authenticated route.

Run with:
    python scripts/demo_login_flow.py

Everything happens in-process against a throwaway directory: fresh
secret files, an empty ledger and a whitelist admitting TestClient.
"""

from __future__ import annotations

import json
import secrets
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from fastapi.testclient import TestClient

from shoplist_server.core.config import Settings
from shoplist_server.main import create_app

TEST_USERNAME = "demo"
TEST_PASSWORD = "demo-pass"


def _write_secret(path: Path) -> None:
    valid_until = datetime.now(UTC) + timedelta(days=1)
    path.write_text(
        json.dumps(
            {"Secret": secrets.token_urlsafe(64), "ValidUntil": valid_until.isoformat()}
        )
    )


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        for name in ("jwtSecret.json", "apiSecret.json", "apiKey.json"):
            _write_secret(root / name)
        (root / "whitelisted_ips.json").write_text(json.dumps(["testclient"]))

        settings = Settings(
            app_env="dev",
            log_level="info",
            log_json=False,
            port=46152,
            database_url="",
            jwt_secret_file=str(root / "jwtSecret.json"),
            admin_secret_file=str(root / "apiSecret.json"),
            admin_key_file=str(root / "apiKey.json"),
            token_ledger_file=str(root / "tokens.txt"),
            ip_whitelist_file=str(root / "whitelisted_ips.json"),
        )

        with TestClient(create_app(settings)) as client:
            # ── 1. Create the account ───────────────────────────────
            resp = client.post(
                "/v1/users",
                json={"username": TEST_USERNAME, "password": TEST_PASSWORD},
            )
            print(f"1. POST /v1/users          -> {resp.status_code}")
            user_id = resp.json()["onlineId"]

            # ── 2. Log in ───────────────────────────────────────────
            resp = client.post(
                f"/v1/users/login/{user_id}",
                json={
                    "onlineId": user_id,
                    "username": TEST_USERNAME,
                    "password": TEST_PASSWORD,
                },
            )
            print(f"2. POST /v1/users/login/{user_id} -> {resp.status_code}")
            token = resp.json()["token"]

            # ── 3. Authenticated ping ───────────────────────────────
            headers = {"Authorization": f"Bearer {token}"}
            resp = client.get("/v1/ping", headers=headers)
            print(f"3. GET /v1/ping            -> {resp.status_code} {resp.json()}")

            # ── 4. Same call without the token ──────────────────────
            resp = client.get("/v1/ping")
            print(f"4. GET /v1/ping (no token) -> {resp.status_code} {resp.json()}")

            ledger = (root / "tokens.txt").read_text().splitlines()
            print(f"\nLedger holds {len(ledger)} token(s)")


if __name__ == "__main__":
    main()
