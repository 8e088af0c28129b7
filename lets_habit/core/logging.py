"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from lets_habit.core.context import get_request_id


class RequestIdFilter(logging.Filter):
    """Stamp log records with the active request id, or '-' outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO", sql_echo: bool = False) -> None:
    """Configure application logging once at startup.

    ``sql_echo`` raises the SQLAlchemy engine logger to INFO so statements are
    printed through the same handler instead of SQLAlchemy's own echo stream.
    """
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
                }
            },
            "filters": {
                "request_id": {
                    "()": "lets_habit.core.logging.RequestIdFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["request_id"],
                }
            },
            "loggers": {
                "sqlalchemy.engine": {
                    "level": "INFO" if sql_echo else "WARNING",
                },
                "apscheduler": {
                    "level": "WARNING",
                },
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s (sql_echo=%s)", log_level, sql_echo)
    setattr(configure_logging, "_configured", True)
