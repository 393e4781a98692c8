"""JSON logging setup for the transaction service."""
from __future__ import annotations

import logging

from pythonjsonlogger import jsonlogger

from transaction_service.config import AppInfo

_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx")


class _ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """Stamp every record with the service name and version."""

    def add_fields(self, log_record, record, message_dict) -> None:
        super().add_fields(log_record, record, message_dict)
        info = AppInfo()
        log_record.setdefault("service", info.name)
        log_record.setdefault("version", info.version)


def setup_logging(level: str = "INFO") -> None:
    """Replace root handlers with a single JSON stream handler."""

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(level.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(_ServiceJsonFormatter(_JSON_FORMAT))
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


__all__ = ["setup_logging", "get_logger"]
