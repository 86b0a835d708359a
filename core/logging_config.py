"""
Logging Configuration for the EcoSnap API.

This module provides the centralized logging setup for the application. It
supports structured JSON logging for deployed environments and colour-coded,
human-readable logs for development, and tags every record with the
correlation id of the request that produced it.

Key Components:
- `CorrelationFilter`: Injects the current correlation id into each record.
- `JSONFormatter`: Emits one JSON object per record, including any `extra`
  fields passed by the caller.
- `ColoredConsoleFormatter`: Colour-codes levels for local development.
- `get_logging_config` / `setup_logging`: Build and apply the `dictConfig`
  for the current environment.
- `log_function_call`: Decorator logging entry, exit and duration of sync or
  async callables.
"""

import os
import json
import time
import inspect
import logging
import logging.config
import functools
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar

# Context variable for request correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_RECORD_KEYS = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "correlation_id", "taskName", "asctime"}

APP_LOGGERS = ("api", "services", "providers", "core")


class CorrelationFilter(logging.Filter):
    """Filter that adds correlation ID to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        corr_id = correlation_id.get()
        if corr_id:
            record.correlation_id = corr_id
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        corr_id = getattr(record, "correlation_id", None) or correlation_id.get()
        if corr_id:
            log_entry["correlation_id"] = corr_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        corr_id = getattr(record, "correlation_id", None)
        corr_part = f" [{corr_id}]" if corr_id else ""

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8} {record.name}{corr_part}: "
            f"{record.getMessage()}{self.RESET}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration based on environment"""

    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {"()": CorrelationFilter},
        },
        "formatters": {
            "json": {"()": JSONFormatter},
            "colored_console": {"()": ColoredConsoleFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "colored_console"
                if environment == "development"
                else "json",
                "filters": ["correlation"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            **{
                name: {"level": log_level, "handlers": ["console"], "propagate": False}
                for name in APP_LOGGERS
            },
            # Third-party loggers
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }

    if environment == "production":
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filters": ["correlation"],
            "filename": os.getenv("LOG_FILE", "/var/log/ecosnap/app.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }

        for logger_config in config["loggers"].values():
            logger_config["handlers"].append("file")
        config["root"]["handlers"].append("file")

    return config


def setup_logging():
    """Initialize logging configuration"""
    logging.config.dictConfig(get_logging_config())

    logger = logging.getLogger("core.logging")
    environment = os.getenv("ENVIRONMENT", "development")
    logger.info(f"Logging initialized for {environment} environment")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name"""
    return logging.getLogger(name)


def set_correlation_id(corr_id: str):
    """Set correlation ID for the current context"""
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from the current context"""
    return correlation_id.get()


def log_function_call(logger: logging.Logger):
    """Decorator to log function calls with parameters and execution time"""

    def decorator(func):
        def _log_start(args, kwargs):
            logger.debug(
                f"Calling {func.__name__}",
                extra={
                    "call": func.__name__,
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                },
            )

        def _log_success(start_time):
            logger.debug(
                f"Completed {func.__name__}",
                extra={
                    "call": func.__name__,
                    "execution_time_ms": round((time.time() - start_time) * 1000, 2),
                    "success": True,
                },
            )

        def _log_failure(start_time, e):
            logger.error(
                f"Failed {func.__name__}: {str(e)}",
                extra={
                    "call": func.__name__,
                    "execution_time_ms": round((time.time() - start_time) * 1000, 2),
                    "success": False,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            _log_start(args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_failure(start_time, e)
                raise
            _log_success(start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            _log_start(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(start_time, e)
                raise
            _log_success(start_time)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
