# src/eventsocket/utils/logger.py
"""
Structured logging for the Event Socket library.
Wraps structlog on top of the standard logging module so every component gets
a bound logger with context, rendered either as JSON (python-json-logger) or
as plain console lines. Optionally writes to a rotating log file.
"""

import asyncio
import functools
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog
from pythonjsonlogger.json import JsonFormatter

# Top-level stdlib logger every module logger hangs off
ROOT_LOGGER_NAME = "eventsocket"

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

# LogRecord attributes that structlog keys must not overwrite
_RESERVED_KEYS = {"message": "detail", "name": "logger_name", "msg": "detail"}


@dataclass
class LoggerConfig:
    """Logging configuration parameters"""
    level: str = "INFO"
    format: str = "json"
    output_file: Optional[str] = None
    max_bytes: int = 10_485_760
    backup_count: int = 5


def _rename_reserved(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key, replacement in _RESERVED_KEYS.items():
        if key in event_dict:
            event_dict[replacement] = event_dict.pop(key)
    return event_dict


class ESLLogger:
    """
    Process-wide logging manager.
    Configures the stdlib handlers once and hands out structlog loggers.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.config: Optional[LoggerConfig] = None
            self._initialized = True

    def configure(self, config: LoggerConfig) -> None:
        """
        Apply a logging configuration.

        Replaces any handlers previously installed on the package logger,
        so calling it again (e.g. after loading a config file) is safe.

        Args:
            config: Logging configuration to apply

        Raises:
            ValueError: If the level or format is unknown
        """
        level = logging.getLevelName(config.level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {config.level}")
        if config.format == "json":
            formatter: logging.Formatter = JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
        elif config.format == "console":
            formatter = logging.Formatter(CONSOLE_FORMAT)
        else:
            raise ValueError(f"Unknown log format: {config.format}")

        handlers = [logging.StreamHandler(sys.stderr)]
        if config.output_file:
            handlers.append(logging.handlers.RotatingFileHandler(
                config.output_file,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
            ))

        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        root.setLevel(level)
        root.propagate = False

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                _rename_reserved,
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        self.config = config

    def get_logger(self, name: str) -> structlog.stdlib.BoundLogger:
        """
        Get a structured logger for a module.

        Module names outside the package are nested under it so they share
        the package handlers.
        """
        if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return structlog.get_logger(name)


def log_function_call(level: str = "DEBUG") -> Callable:
    """
    Decorator logging entry, exit and failure of a function or coroutine.
    Arguments are never logged.
    """
    def decorator(func: Callable) -> Callable:
        log_name = func.__module__
        method = level.lower()

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                log = ESLLogger().get_logger(log_name)
                getattr(log, method)("function_call", function=func.__qualname__)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    log.debug("function_failed", function=func.__qualname__, error=str(e))
                    raise
                getattr(log, method)("function_return", function=func.__qualname__)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            log = ESLLogger().get_logger(log_name)
            getattr(log, method)("function_call", function=func.__qualname__)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log.debug("function_failed", function=func.__qualname__, error=str(e))
                raise
            getattr(log, method)("function_return", function=func.__qualname__)
            return result
        return wrapper

    return decorator
