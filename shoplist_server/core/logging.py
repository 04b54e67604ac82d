"""Logging configuration for shopping-list-server.

Two output shapes, selected by LOG_JSON:

  _ContainerFormatter - single human-readable line per record, for a
    terminal or `docker logs`.

  _JsonFormatter - one JSON object per line, for log aggregation.
    Request context (request_id, method, path, status_code, duration_ms)
    and auth context (user_id, reason) become top-level keys so they can
    be filtered without regex.

Rule for every module that logs: user ids, failure reasons and client IPs
are fine.  Tokens, secrets, API keys and passwords never are.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for container stdout.

    ``2026-01-01T12:00:00.123+0000 WARNING  [req-id] name  message``

    The request id is shown when the record was emitted inside a request.
    Guard rejections carry a ``reason``, appended as ``reason=...``;
    WARNING and above also get ``[file:line]``.
    """

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        # Milliseconds go before the +0000 offset.
        return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        parts = [self.formatTime(record, self.datefmt), f"{record.levelname:<8}"]
        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            parts.append(f"[{request_id}]")
        parts.append(f"{record.name}  {record.getMessage()}")
        line = " ".join(parts)

        reason = getattr(record, "reason", None)
        if reason:
            line = f"{line}  reason={reason}"
        if record.levelno >= logging.WARNING:
            line = f"{line}  [{record.filename}:{record.lineno}]"
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for machine-parseable output."""

    # Fields the middleware and auth dependencies may attach via `extra=`.
    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "user_id",
        "reason",
        "client_ip",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON env var in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
