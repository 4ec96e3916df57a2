from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any

logger = logging.getLogger("autoproxy")

# CLI level names -> stdlib levels. "panic" and "fatal" both map to CRITICAL.
LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

MAX_EVENTS = 200

_recent: deque[dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_recent_lock = Lock()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_level(name: str) -> int:
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"not a valid log level: {name!r}") from None


def configure_logging(level: str) -> None:
    """Set up the process-wide handler. Raises ValueError for unknown levels."""
    lvl = parse_level(level)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(message)s", level=lvl)
    logger.setLevel(lvl)


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{k}={v}" for k, v in sorted(fields.items()))


def log_event(level: str, message: str, **fields: Any) -> None:
    """Log `message` with structured `key=value` context and remember it for the status API."""
    lvl = parse_level(level)
    if fields:
        logger.log(lvl, "%s %s", message, _format_fields(fields))
    else:
        logger.log(lvl, "%s", message)
    if not logger.isEnabledFor(lvl):
        return
    with _recent_lock:
        _recent.append(
            {
                "ts": utc_now(),
                "level": logging.getLevelName(lvl),
                "message": message,
                "fields": {k: str(v) for k, v in fields.items()},
            }
        )


def latest_events(limit: int = 50) -> list[dict[str, Any]]:
    with _recent_lock:
        items = list(_recent)
    items.reverse()
    return items[: max(0, limit)]


def clear_events() -> None:
    with _recent_lock:
        _recent.clear()
