"""Logging configuration used by the metadata store and CLI
"""

import os
import logging
from typing import Dict, Any, Optional

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()  # 'console' or 'json'


def _get_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _configure_stdlib(level: str) -> None:
    """Configure the standard library logging root logger."""
    root = logging.getLogger()
    if root.handlers:
        root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(_get_level(level))

    noisy = ["sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool"]
    for name in noisy:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        if lg.handlers:
            lg.handlers.clear()
        lg.propagate = False


def _configure_structlog(fmt: str) -> None:
    """Configure structlog for compact console or JSON output."""
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Apply logging configuration (idempotent)."""
    _configure_stdlib(level or LOG_LEVEL)
    _configure_structlog((fmt or LOG_FORMAT).lower())


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)


class StoreLogger:
    """Small wrapper used by store components for consistent, concise logs.

    Usage:
        log = StoreLogger("store")
        log.set_context(db_path=...)
        log.info("Object created", oid=...)
    """

    def __init__(self, component: str):
        self._logger = get_logger(f"lfs_metadata.{component}")
        self._context: Dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        self._context.update(kwargs)

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        merged = {**self._context, **kwargs}
        getattr(self._logger, level)(event, **merged)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)


configure_logging()
