"""Structured Logging — JSON and text formatters shared by the API and CLI commands.

Invariants:
    - Every record carries timestamp, level, logger name and message
    - Whitelisted extra fields (EXTRA_FIELDS) are emitted when a call site passes them
    - Calling setup_logging again replaces the handler instead of stacking a second one

Design Decisions:
    - JSON for the deployed API, text for local runs and the CLI
    - Driver and HTTP client loggers are held at WARNING so request logs stay readable
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "error_code", "path", "resource", "resource_id",
    "file_id", "admin_id", "reason",
)

QUIET_LOGGERS = ("pymongo", "httpx", "httpcore")

_HANDLER_NAME = "backstage"


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key] for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with extra fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
