"""Origins allowed to create accounts.

Loaded once at startup from a JSON array of strings.  An entry is either
an exact address or an IPv4 ``a.b.0.0`` prefix, which admits every
address sharing the first two octets.  Nothing mutates the list after
load.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from shoplist_server.services.errors import IPNotAllowed

logger = logging.getLogger(__name__)


def reduce_to_prefix(ip: str) -> str:
    """``10.1.2.3`` -> ``10.1.0.0``.  Anything that is not IPv4 is returned as-is."""
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return ip
    if addr.version != 4:
        return ip
    first, second, _, _ = str(addr).split(".")
    return f"{first}.{second}.0.0"


class IPAllowList:
    def __init__(self, entries: Iterable[str] = ()) -> None:
        self._entries = frozenset(e.strip() for e in entries if e.strip())

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> IPAllowList:
        """Read the whitelist file.

        A missing file yields an empty list (nobody may create accounts).
        A present but malformed file raises ValueError so startup fails.
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("No IP whitelist at %s; account creation is closed", path)
            return cls()
        except json.JSONDecodeError as e:
            raise ValueError(f"IP whitelist {path} is not valid JSON: {e}") from e

        # Older deployments wrapped the list as {"ips": [...]}.
        if isinstance(raw, dict):
            raw = raw.get("ips")
        if not isinstance(raw, list) or not all(isinstance(e, str) for e in raw):
            raise ValueError(f"IP whitelist {path} must be a JSON array of strings")

        allowlist = cls(raw)
        logger.info("Found IP whitelist with %d entries at %s", len(allowlist), path)
        return allowlist

    def is_allowed(self, ip: str) -> bool:
        return ip in self._entries or reduce_to_prefix(ip) in self._entries

    def check(self, ip: str) -> None:
        if not self.is_allowed(ip):
            raise IPNotAllowed(f"ip {ip} not whitelisted")
