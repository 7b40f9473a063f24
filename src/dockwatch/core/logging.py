"""
Dockwatch Logging.

Two renderings of the same records:
- text: one line per record, level and logger colored when stdout is a TTY
- json: one object per line, for shipping next to the stats themselves

Records may carry container context through `extra=`; the JSON rendering
lifts the known keys (see CONTEXT_FIELDS) to the top level.

Env vars: DOCKWATCH_LOG_LEVEL, DOCKWATCH_LOG_FORMAT, DOCKWATCH_LOG_COLOR.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ("container", "runtime_id", "duration_ms", "status", "attempt")

# Client libraries log every request; one stats POST per container per cycle
_QUIET_LOGGERS = ("httpx", "httpcore", "docker", "urllib3", "uvicorn.access")

_RESET = "\033[0m"
_DIM = "\033[2m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


class ColorFormatter(logging.Formatter):
    """`HH:MM:SS [logger] LEVEL: message`, optionally with ANSI colors."""

    def __init__(self, use_color: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color:
            # Other handlers may see the same record, so paint a copy
            record = logging.makeLogRecord(record.__dict__)
            color = _LEVEL_COLORS.get(record.levelno, "")
            record.levelname = f"{color}{record.levelname}{_RESET}"
            record.name = f"{_DIM}{record.name}{_RESET}"
        return super().format(record)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; CONTEXT_FIELDS present on the record are kept."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_FIELDS
            if hasattr(record, key)
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _use_color(stream) -> bool:
    setting = os.getenv("DOCKWATCH_LOG_COLOR", "auto").lower()
    if setting in ("true", "false"):
        return setting == "true"
    return bool(getattr(stream, "isatty", None) and stream.isatty())


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Arguments win over DOCKWATCH_LOG_LEVEL / DOCKWATCH_LOG_FORMAT. Safe to call
    more than once; earlier handlers are replaced.
    """
    level_name = (level or os.getenv("DOCKWATCH_LOG_LEVEL", "INFO")).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    fmt = (fmt or os.getenv("DOCKWATCH_LOG_FORMAT", "text")).lower()

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(ColorFormatter(use_color=_use_color(sys.stdout)))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(numeric)

    logging.getLogger("dockwatch").debug(
        "Logging configured (level=%s, format=%s)", level_name, fmt
    )
