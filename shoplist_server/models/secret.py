from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

# Written into a freshly created secret file.  A store holding this value
# is treated as unprovisioned until an operator replaces it.
PLACEHOLDER_SECRET = "<enter secret here>"


@dataclass(frozen=True, slots=True)
class Secret:
    """A symmetric signing key and the end of its validity window."""

    value: str
    valid_until: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.valid_until

    def to_file(self) -> dict[str, str]:
        return {
            "Secret": self.value,
            "ValidUntil": self.valid_until.isoformat(),
        }

    @staticmethod
    def from_file(raw: dict) -> Secret:
        """Build from the on-disk shape ``{"Secret": ..., "ValidUntil": ...}``.

        Raises KeyError/TypeError/ValueError on a bad shape; the caller
        turns those into SecretFileMalformed.
        """
        value = raw["Secret"]
        if not isinstance(value, str):
            raise TypeError("Secret must be a string")
        return Secret(value=value, valid_until=parse_timestamp(raw["ValidUntil"]))


def parse_timestamp(raw: object) -> datetime:
    """Parse an RFC 3339 timestamp.  Naive values are taken as UTC."""
    if not isinstance(raw, str):
        raise TypeError("timestamp must be a string")
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
