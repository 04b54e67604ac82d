"""Durable record of every session token this server issued.

A JWT that verifies is not automatically a token we handed out: anyone
who got hold of the secret could mint one, and a token minted under a
rotated-out secret that somehow still verifies should not come back.  The
ledger closes that gap.  TokenVerifier accepts a token only if its exact
string is recorded here.

FILE FORMAT
-----------
One token per line.  Older ledgers separated tokens with commas, so the
reader splits on both.  JWTs never contain either character.

WRITES
------
  append  - normal operation: one line appended per login.
  compact - startup and maintenance: rewrite the file with only the tokens
            that still verify, via temp file + os.replace so a crash never
            leaves a truncated ledger.

Both paths hold one lock that also guards the in-memory set, so
concurrent logins cannot lose each other's entries.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path

from shoplist_server.core.metrics import TOKEN_LEDGER_SIZE
from shoplist_server.services import jwt_codec
from shoplist_server.services.errors import AuthError
from shoplist_server.services.secret_store import SecretStore

logger = logging.getLogger(__name__)

_DELIMITERS = re.compile(r"[,\r\n]+")


class TokenLedger:
    def __init__(self, path: str | os.PathLike[str], secret_store: SecretStore) -> None:
        self.path = Path(path)
        self._secret_store = secret_store
        self._tokens: set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._tokens)

    @property
    def tokens(self) -> frozenset[str]:
        return frozenset(self._tokens)

    def load(self) -> frozenset[str]:
        """Read the ledger, drop stale tokens, rewrite it, return survivors.

        SecretExpired propagates: with no usable secret every token would
        look invalid and compaction would wipe the ledger.
        """
        self.prune()
        logger.info("Token ledger loaded from %s with %d tokens", self.path, len(self))
        return self.tokens

    def prune(self) -> int:
        """Compact the ledger in place.  Returns the number of tokens dropped."""
        secret = self._secret_store.current()
        with self._lock:
            stored = self._read_file() | self._tokens
            valid = {t for t in stored if self._still_valid(t, secret.value)}
            self._rewrite(valid)
            self._tokens = valid
            TOKEN_LEDGER_SIZE.set(len(valid))
        removed = len(stored) - len(valid)
        if removed:
            logger.info("Pruned %d stale tokens from %s", removed, self.path)
        return removed

    def append(self, token: str) -> None:
        if not token:
            raise ValueError("refusing to record an empty token")
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(token + "\n")
                f.flush()
                os.fsync(f.fileno())
            self._tokens.add(token)
            TOKEN_LEDGER_SIZE.set(len(self._tokens))

    def contains(self, token: str) -> bool:
        if token in self._tokens:
            return True
        # Another process sharing the file may have issued it.
        on_disk = self._read_file()
        if token not in on_disk:
            return False
        with self._lock:
            self._tokens.add(token)
            TOKEN_LEDGER_SIZE.set(len(self._tokens))
        return True

    # -- internals ----------------------------------------------------------

    def _read_file(self) -> set[str]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return set()
        return {t.strip() for t in _DELIMITERS.split(content) if t.strip()}

    def _rewrite(self, tokens: set[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for token in sorted(tokens):
                    f.write(token + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _still_valid(token: str, secret: str) -> bool:
        try:
            jwt_codec.require_hmac(token)
            jwt_codec.decode(token, secret)
        except AuthError:
            return False
        return True
