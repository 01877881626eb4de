"""
Logging configuration.

Three sinks are wired onto the root logger by ``setup_logging()``:

* stdout, human-readable (ANSI colours only when attached to a terminal);
* ``logs/fundscreener.log``, one JSON object per line, size-rotated;
* ``logs/fundscreener-error.log``, the same JSON but ERROR and above only.

``DEBUG=true`` lowers every sink to DEBUG and turns on SQLAlchemy statement
logging. Modules just use ``logging.getLogger(__name__)``; anything passed via
``extra=`` (``request_id``, ``filters``, ``elapsed_ms`` ...) lands as a
top-level key in the JSON lines.
"""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict

from fundscreener.core.config import settings

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
LOG_FILE = "fundscreener.log"
ERROR_LOG_FILE = "fundscreener-error.log"

# Attributes every LogRecord has; anything else on a record came from ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields are merged in at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [rid] message``, level coloured when ``colour`` is set."""

    LEVEL_COLOURS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "1;31",
    }

    def __init__(self, colour: bool = False):
        super().__init__(datefmt="%H:%M:%S")
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        if self.colour:
            level = f"\033[{self.LEVEL_COLOURS.get(record.levelno, '0')}m{level}\033[0m"

        request_id = getattr(record, "request_id", None)
        scope = f"{record.name} [{request_id[:8]}]" if request_id else record.name

        line = f"{self.formatTime(record, self.datefmt)} {level} {scope}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _logging_config(level: str) -> Dict[str, Any]:
    def rotating(filename: str, file_level: str) -> Dict[str, Any]:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": os.path.join(LOG_DIR, filename),
            "maxBytes": settings.LOG_FILE_MAX_BYTES,
            "backupCount": settings.LOG_FILE_BACKUP_COUNT,
            "encoding": "utf-8",
            "formatter": "json",
            "level": file_level,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "console": {"()": ConsoleFormatter, "colour": os.isatty(1)},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "console",
                "level": level,
            },
            "file": rotating(LOG_FILE, level),
            "errors": rotating(ERROR_LOG_FILE, "ERROR"),
        },
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "aiosqlite": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "DEBUG" if settings.DEBUG else "WARNING"},
        },
        "root": {"level": level, "handlers": ["console", "file", "errors"]},
    }


def setup_logging() -> None:
    """
    Install the handlers described above.

    Does nothing when the root logger is already configured, which is the
    case under pytest's log capture and on repeated calls.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper()
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.config.dictConfig(_logging_config(level))

    logging.getLogger(__name__).info(
        "Logging to %s at %s (rotating every %d MB, keeping %d)",
        os.path.join(LOG_DIR, LOG_FILE),
        level,
        settings.LOG_FILE_MAX_BYTES // (1024 * 1024),
        settings.LOG_FILE_BACKUP_COUNT,
    )
