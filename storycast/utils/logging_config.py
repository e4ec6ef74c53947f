"""
JSON logging for the ``storycast`` logger tree.

Every record becomes one JSON line carrying the turn fields passed via
``extra`` (story id, handler, event type, provider, timings)::

    from storycast.utils.logging_config import get_logger, StoryAdapter

    logger = StoryAdapter(get_logger("storycast.streaming"), story_id=7)
    logger.info("turn finished", extra={"handler": "live", "duration_ms": 812})

Records go to the configured log file at ``level`` and to stderr from
WARNING up.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional

ROOT_LOGGER = "storycast"

# Attributes copied from ``extra`` into the JSON line when present
TURN_FIELDS = (
    "story_id",
    "user_id",
    "handler",
    "event_type",
    "provider",
    "memory_status",
    "duration_ms",
    "metadata",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(
            (field, getattr(record, field))
            for field in TURN_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, ensure_ascii=False)


class StoryAdapter(logging.LoggerAdapter):
    """Stamps ``story_id`` on every record while keeping per-call ``extra``."""

    def __init__(self, logger: logging.Logger, story_id: int | str):
        super().__init__(logger, {"story_id": story_id})

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Attach JSON handlers to the ``storycast`` logger once per process."""
    root = logging.getLogger(ROOT_LOGGER)
    if any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        return root

    root.setLevel(level)
    root.propagate = False
    formatter = JSONFormatter()

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING)
    root.addHandler(stderr_handler)
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
