# personalizer/logging_setup.py
import logging
from logging.config import dictConfig
from logging import LogRecord
from pathlib import Path
import contextvars
import os

# ---- Correlation ID (used by middleware) ----
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

class RequestIdFilter(logging.Filter):
    def filter(self, record: LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED = set(vars(logging.LogRecord("x", logging.INFO, "x", 0, "", None, None))) | {
    "message", "asctime", "request_id",
}

class ExtraFieldsFormatter(logging.Formatter):
    """Standard formatter that appends `extra=` fields as key=value pairs."""

    def format(self, record: LogRecord) -> str:
        base = super().format(record)
        fields = {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}
        if not fields:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
        return f"{base} | {rendered}"

# ---- Paths & levels ----
BASE_DIR = Path(__file__).resolve().parents[1]  # project root (folder that contains 'personalizer/')
LOG_DIR = Path(os.getenv("LOG_DIR", BASE_DIR / "logs"))
LOG_FILE = LOG_DIR / "personalizer.log"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

def setup_logging() -> Path:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,

        "filters": {
            "request_id": {"()": RequestIdFilter},
        },

        "formatters": {
            "standard": {
                "()": ExtraFieldsFormatter,
                "fmt":"%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s | %(message)s",
            },
            "uvicorn_access": {
                "format": "%(asctime)s | %(levelname)s | %(message)s"
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["request_id"],
            },
            "file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "formatter": "standard",
                "filters": ["request_id"],
                "filename": str(LOG_FILE),
                "when": "midnight",
                "backupCount": 14,
                "encoding": "utf-8",
            },
            "uvicorn_console": {
                "class": "logging.StreamHandler",
                "formatter": "uvicorn_access",
            },
        },

        "loggers": {
            # personalizer.* children propagate here
            "personalizer": {"handlers": ["console", "file"], "level": LOG_LEVEL, "propagate": False},

            # Decay sweep runs under APScheduler
            "apscheduler": {"handlers": ["console", "file"], "level": "INFO", "propagate": False},

            "uvicorn.error":  {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": ["uvicorn_console", "file"], "level": "INFO", "propagate": False},
        },

        "root": {"handlers": ["console"], "level": "WARNING"},
    })

    logging.getLogger("personalizer").info("LOGGING_READY", extra={"path": str(LOG_FILE)})
    return LOG_FILE

def get_logger(name: str = "personalizer") -> logging.Logger:
    return logging.getLogger(name)
