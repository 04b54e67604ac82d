#!/usr/bin/env python3
"""Mint an admin API key for the x-api-key header.

RUN:  python scripts/mint_admin_key.py --days 30

Reads the admin API secret and the master admin key from the files named
by ADMIN_SECRET_FILE / ADMIN_KEY_FILE (or --secret-file / --key-file),
and prints a signed key valid for the requested number of days.  The key
is printed to stdout only; keep it out of shell history and logs.
"""

from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime, timedelta

from shoplist_server.core.config import load_settings
from shoplist_server.services.admin_keys import mint_admin_key
from shoplist_server.services.errors import SecretExpired, SecretStoreError
from shoplist_server.services.secret_store import SecretStore


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--days", type=int, default=30, help="validity in days")
    parser.add_argument("--secret-file", default=settings.admin_secret_file)
    parser.add_argument("--key-file", default=settings.admin_key_file)
    args = parser.parse_args(argv)

    if args.days <= 0:
        parser.error("--days must be positive")

    admin_secret = SecretStore(args.secret_file, label="admin API")
    master_key = SecretStore(args.key_file, label="admin master key")
    try:
        key = mint_admin_key(
            admin_secret,
            master_key,
            valid_until=datetime.now(UTC) + timedelta(days=args.days),
        )
    except (SecretStoreError, SecretExpired) as e:
        print(f"Cannot mint admin key: {e}", file=sys.stderr)
        return 1

    print(key)
    return 0


if __name__ == "__main__":
    sys.exit(main())
