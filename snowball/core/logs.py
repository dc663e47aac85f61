"""snowball.core.logs

Logging setup for entry points (CLI, API).

Library code only ever calls `logging.getLogger(__name__)` and logs
snake_case event names with `extra=` fields. Handlers are installed here,
once, by whoever owns the process.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from snowball.core.config import LoggingConfig

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED and not k.startswith("_")}


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable line with `extra=` fields appended as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def configure_logging(cfg: LoggingConfig | None = None) -> None:
    cfg = cfg or LoggingConfig()

    level = getattr(logging, cfg.level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if cfg.json_output else KeyValueFormatter())

    root = logging.getLogger("snowball")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
