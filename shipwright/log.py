"""
Logging setup: console output plus an optional JSON-lines file.

Each line in ``<log_dir>/shipwright.jsonl`` is one record:
    {"timestamp": ..., "level": ..., "logger": ..., "message": ..., "data": {...}}
``data`` holds whatever was passed through ``extra=`` on the logging call.
The file rotates daily and keeps two weeks of history.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone

from .config import Settings

LOG_FILE = "shipwright.jsonl"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# attributes every LogRecord has; anything else came in via ``extra=``
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the ``shipwright`` logger tree. Safe to call more than once."""
    root = logging.getLogger("shipwright")
    root.setLevel(settings.log_level)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)

    if settings.log_dir:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.TimedRotatingFileHandler(
            settings.log_dir / LOG_FILE, when="midnight", backupCount=14, encoding="utf-8",
        )
        fh.setFormatter(JsonLineFormatter())
        root.addHandler(fh)

    root.propagate = False
    return root
