"""
Centralized structured logging for the storefront core.

Keyword arguments passed to a logger call become structured fields on the
record. tenant_id and user_id are lifted to the top level of JSON lines so
log queries can filter by storefront account or shopper; free-text
customer input is redacted before it reaches any handler.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Promoted to top-level keys in JSON output
SCOPE_FIELDS = ("tenant_id", "user_id")

# Customer-written text never leaves the process through logs
REDACTED_FIELDS = frozenset({"notes", "customer_name", "search"})
REDACTED = "[redacted]"


def _scrub(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: (REDACTED if k in REDACTED_FIELDS and v is not None else v) for k, v in fields.items()}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        fields = dict(getattr(record, "fields", None) or {})

        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in SCOPE_FIELDS:
            if key in fields:
                log_data[key] = fields.pop(key)
        if fields:
            log_data["data"] = fields

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            log_data["source"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Single-line colored output for local runs and test failures."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        fields = getattr(record, "fields", None)
        if fields:
            line += " [" + " ".join(f"{k}={v}" for k, v in fields.items()) + "]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods accept structured fields as keywords.

        logger.info("Cart line merged", tenant_id=1, cart_item_id=7, quantity=5)

    exc_info keeps its stdlib meaning on every level.
    """

    def _log_fields(self, level: int, msg: str, args: tuple, fields: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = fields.pop("exc_info", None)
        extra = fields.pop("extra", None) or {}
        extra["fields"] = _scrub(fields) if fields else None
        self._log(level, msg, args, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log_fields(logging.DEBUG, msg, args, fields)

    def info(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log_fields(logging.INFO, msg, args, fields)

    def warning(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log_fields(logging.WARNING, msg, args, fields)

    def error(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log_fields(logging.ERROR, msg, args, fields)

    def critical(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log_fields(logging.CRITICAL, msg, args, fields)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Install the handler on the root logger, then check the settings.
    Call once at process start.

    JSON lines outside development, colored text otherwise.

    Raises:
        RuntimeError: The settings are unsafe and the environment is production.
    """
    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.environment == "development":
        handler.setFormatter(DevelopmentFormatter())
    else:
        handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Statement logging is controlled by settings.db_echo instead
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    config_errors = settings.validate_production_settings()
    if config_errors:
        config_logger = get_logger("storefront.config")
        for error in config_errors:
            config_logger.error("Configuration error", problem=error, environment=settings.environment)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Refusing to start with unsafe configuration."
            )
        config_logger.warning("Configuration errors ignored outside production", count=len(config_errors))


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Products listed", tenant_id=1, total_count=40)
    """
    logger = logging.getLogger(name)
    if not isinstance(logger, StructuredLogger):
        # Created before setLoggerClass ran (e.g. by a library at import time)
        logger.__class__ = StructuredLogger
    return logger  # type: ignore[return-value]


# Named loggers for the two engines
catalog_logger = get_logger("storefront.catalog")
cart_logger = get_logger("storefront.cart")
