"""Structured Logging — JSON log lines carrying queue context.

Invariants:
    - Every line has timestamp (the record's creation time, UTC), level, logger, message
    - Queue context passed via `extra=` (see QUEUE_CONTEXT_FIELDS) is copied when not None
    - setup_logging is idempotent: a second call replaces the handler it installed
"""

import logging
import json
from datetime import datetime, timezone

QUEUE_CONTEXT_FIELDS = (
    "course_id", "question_id", "user_id", "error_code", "event",
    "delay_seconds", "path",
)

_HANDLER_NAME = "helpqueue"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(
            (key, record.__dict__[key])
            for key in QUEUE_CONTEXT_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        # enums (EventTopic, OffReason) and datetimes fall back to str()
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the root handler; `fmt` is "json" or "text"."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
