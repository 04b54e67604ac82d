"""File-backed signing secret with a validity window.

The file holds ``{"Secret": "...", "ValidUntil": "<RFC 3339>"}``.  The
same class backs three files: the session-token secret, the admin-key
secret and the master admin key.

First run: when the file does not exist we write a placeholder (valid for
90 days) so the operator can see the expected shape, then refuse to
continue.  A store still holding the placeholder is just as unusable as a
missing one.  Rotation is external: replace the value and extend
ValidUntil, then restart.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from shoplist_server.models.secret import PLACEHOLDER_SECRET, Secret
from shoplist_server.services.errors import (
    SecretExpired,
    SecretFileMalformed,
    SecretNotProvisioned,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_VALIDITY = timedelta(days=90)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SecretStore:
    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        label: str = "JWT",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = Path(path)
        self.label = label
        self._clock = clock
        self._secret: Secret | None = None

    def load(self) -> Secret:
        """Read the secret file, creating a placeholder on first run.

        Raises SecretNotProvisioned (file missing or still the placeholder)
        or SecretFileMalformed (unreadable JSON / timestamp).
        """
        if not self.path.exists():
            self._write_placeholder()
            raise SecretNotProvisioned(
                f"{self.label} secret file {self.path} did not exist; a placeholder "
                "was written and must be replaced before the server can start"
            )

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            secret = Secret.from_file(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise SecretFileMalformed(
                f"{self.label} secret file {self.path} is malformed: {e}"
            ) from e

        if not secret.value or secret.value == PLACEHOLDER_SECRET:
            raise SecretNotProvisioned(
                f"{self.label} secret file {self.path} still holds the placeholder"
            )

        self._secret = secret
        logger.info(
            "Loaded %s secret from %s valid_until=%s",
            self.label,
            self.path,
            secret.valid_until.isoformat(),
        )
        return secret

    def current(self) -> Secret:
        """Return the secret, or raise SecretExpired once its window closed."""
        secret = self._secret if self._secret is not None else self.load()
        if secret.is_expired(self._clock()):
            logger.error(
                "%s secret in %s expired at %s; renew it",
                self.label,
                self.path,
                secret.valid_until.isoformat(),
            )
            raise SecretExpired(f"{self.label} secret expired")
        return secret

    def _write_placeholder(self) -> None:
        placeholder = Secret(
            value=PLACEHOLDER_SECRET,
            valid_until=self._clock() + PLACEHOLDER_VALIDITY,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # "x" fails if another process created the file first.
            with self.path.open("x", encoding="utf-8") as f:
                json.dump(placeholder.to_file(), f, indent="\t")
        except FileExistsError:
            logger.info("%s secret file %s created concurrently", self.label, self.path)
            return
        os.chmod(self.path, 0o600)
        logger.critical(
            "No %s secret found; wrote placeholder to %s. Replace the 'Secret' "
            "value before starting the server.",
            self.label,
            self.path,
        )
