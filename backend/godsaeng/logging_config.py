import json
import logging
import os
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, Dict

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] user=%(user_id)s %(message)s"
ANONYMOUS = "-"

_current_user_id: ContextVar[str] = ContextVar("godsaeng_user_id", default=ANONYMOUS)


def bind_user_id(user_id: str) -> Token:
    """Attach the caller's user id to every log record emitted in this context."""
    return _current_user_id.set(user_id.strip() or ANONYMOUS)


def reset_user_id(token: Token) -> None:
    _current_user_id.reset(token)


def current_user_id() -> str:
    return _current_user_id.get()


class UserContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "user_id"):
            record.user_id = current_user_id()
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "user_id": getattr(record, "user_id", ANONYMOUS),
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging() -> None:
    """Configure process-wide logging from GODSAENG_LOG_LEVEL and GODSAENG_LOG_FORMAT."""
    level = os.getenv("GODSAENG_LOG_LEVEL", "INFO").upper()
    formatter = "json" if os.getenv("GODSAENG_LOG_FORMAT", "text").lower() == "json" else "default"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "user_context": {"()": UserContextFilter},
            },
            "formatters": {
                "default": {"format": DEFAULT_LOG_FORMAT},
                "json": {"()": JSONFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "filters": ["user_context"],
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if os.getenv("GODSAENG_DEBUG_SQL", "0") == "1":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
