"""
Logging for the Lumen backend.

Every line carries the request id and the username set by the request
middleware, so one dashboard action can be followed through its ERPNext calls.
Structured payloads go in `extra={"data": {...}}`.
"""

import logging
import logging.handlers
import json
import os
from datetime import datetime, timezone
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
username_var: ContextVar[str] = ContextVar("username", default="-")

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "motor", "pymongo")


def _context() -> dict:
    return {"request_id": request_id_var.get("-"), "username": username_var.get("-")}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for production and the log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **_context(),
            "message": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    LEVEL_COLORS = {"DEBUG": 36, "INFO": 32, "WARNING": 33, "ERROR": 31, "CRITICAL": 35}

    def format(self, record: logging.LogRecord) -> str:
        ctx = _context()
        color = self.LEVEL_COLORS.get(record.levelname, 0)
        msg = (
            f"\033[{color}m{record.levelname:<7}\033[0m {record.name} "
            f"[req={ctx['request_id']} user={ctx['username']}] {record.getMessage()}"
        )
        data = getattr(record, "data", None)
        if data:
            msg += f"  | data={data}"
        if record.exc_info and record.exc_info[0] is not None:
            msg += f"\n{self.formatException(record.exc_info)}"
        return msg


def _file_handler(log_dir: str) -> logging.Handler:
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, "app.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging():
    """
    Console output is colored in development and JSON in production. Outside
    of tests a rotating JSON file is written to LOG_DIR (default ./logs).
    """
    env = os.getenv("ENV", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(JSONFormatter() if env == "production" else DevFormatter())
    root_logger.addHandler(console)

    log_dir = "-"
    if env != "testing":
        log_dir = os.getenv("LOG_DIR") or os.path.join(os.path.dirname(__file__), "logs")
        root_logger.addHandler(_file_handler(log_dir))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("lumen").info(f"Logging initialized | env={env} level={log_level} dir={log_dir}")


def get_logger(name: str) -> logging.Logger:
    """`get_logger("sync.leads")` -> the `lumen.sync.leads` logger."""
    return logging.getLogger(f"lumen.{name}")
