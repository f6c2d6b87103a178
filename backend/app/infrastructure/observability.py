"""Structured Logging: one JSON object per line, carrying bookmark-sync context.

Invariants:
    - Every line has timestamp, level, logger and message
    - Sync context passed via extra= (owner_id, bookmark_id, event_kind, generation,
      subscription, error_code, path) is emitted only when set, never as null
    - setup_logging() owns exactly one root handler: calling it again (reloads, repeated
      lifespans in tests) replaces that handler instead of stacking duplicates

Design Decisions:
    - Hand-rolled JSONFormatter on stdlib logging: no extra dependency for a flat schema
    - default=str: UUIDs, datetimes and enums in extra fields serialize without casts
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "owner_id", "bookmark_id", "event_kind", "error_code",
    "path", "generation", "subscription",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install (or replace) the application's root log handler."""
    global _handler
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    if _handler is not None:
        logging.root.removeHandler(_handler)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _handler = handler
    return handler
