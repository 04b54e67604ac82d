#!/usr/bin/env python3
"""Compact the token ledger offline.

RUN:  python scripts/prune_tokens.py

Drops every ledger entry that no longer verifies under the current
session secret (expired, or signed by a rotated-out secret) and rewrites
the file.  The server does the same at startup; this is for operators
who want to shrink the file without a restart.  Do not run it while a
server is writing to the same ledger.
"""

from __future__ import annotations

import argparse
import sys

from shoplist_server.core.config import load_settings
from shoplist_server.core.logging import setup_logging
from shoplist_server.services.errors import SecretExpired, SecretStoreError
from shoplist_server.services.secret_store import SecretStore
from shoplist_server.services.token_ledger import TokenLedger


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--ledger-file", default=settings.token_ledger_file)
    parser.add_argument("--secret-file", default=settings.jwt_secret_file)
    args = parser.parse_args(argv)

    setup_logging(settings.log_level, json_format=settings.log_json)

    ledger = TokenLedger(args.ledger_file, SecretStore(args.secret_file, label="JWT"))
    try:
        removed = ledger.prune()
    except (SecretStoreError, SecretExpired) as e:
        print(f"Cannot prune ledger: {e}", file=sys.stderr)
        return 1

    print(f"Removed {removed} tokens; {len(ledger)} remain")
    return 0


if __name__ == "__main__":
    sys.exit(main())
