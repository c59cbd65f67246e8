"""Structured Logging for Riposte

- Colored, human-readable dev output or JSON structured production output
- Reply correlation IDs bound through context vars
- Category loggers (request / reply / error / dispatch)
- ``ReplyObserver``: the small callback interface the dispatcher reports to
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, Protocol, runtime_checkable

import structlog
from structlog.types import EventDict, Processor

SENSITIVE_KEYS = frozenset({"password", "token", "secret", "authorization", "cookie", "set-cookie", "api_key"})

# structlog's stdlib logger has no "trace" method
_LEVEL_ALIASES = {"trace": "debug", "warn": "warning", "fatal": "critical"}


def redact(
    obj: Any,
    sensitive_keys: frozenset[str] | set[str] = SENSITIVE_KEYS,
    depth: int = 0,
    max_depth: int = 5,
) -> Any:
    """Return a copy of ``obj`` with values under sensitive keys replaced."""
    if depth > max_depth:  # Prevent infinite recursion
        return obj
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]"
            if isinstance(k, str) and k.lower() in sensitive_keys
            else redact(v, sensitive_keys, depth + 1, max_depth)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [redact(item, sensitive_keys, depth + 1, max_depth) for item in obj]
    return obj


def _censor_sensitive_keys(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that redacts sensitive information."""
    return redact(event_dict)


def _add_service_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", "riposte")
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used in both dev and prod configurations."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_service_info,
        _censor_sensitive_keys,
    ]


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Hosts that already configure structlog should skip this; the category
    loggers below work with any structlog configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON format (for production). If False, colored console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = get_shared_processors()

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to the current logging context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LoggerRegistry:
    """Registry of category loggers."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, name: str) -> structlog.stdlib.BoundLogger:
        if name not in cls._loggers:
            cls._loggers[name] = get_logger(f"riposte.{name}")
        return cls._loggers[name]


def dispatch_logger() -> structlog.stdlib.BoundLogger:
    return LoggerRegistry.get("dispatch")


def resolve_level(level: str | None) -> str | None:
    """Normalize a configured level name; ``None`` or empty disables logging."""
    if not level:
        return None
    level = level.lower()
    return _LEVEL_ALIASES.get(level, level)


@runtime_checkable
class ReplyObserver(Protocol):
    """Callbacks the dispatcher reports to while handling a reply."""

    def request(self, reply_id: str, request: Any) -> None: ...

    def reply(self, reply_id: str, status_code: int | None, body: dict | None) -> None: ...

    def error(self, error: BaseException | Any, reply_id: str | None = None) -> None: ...

    def trace(self, event: str, **fields: Any) -> None: ...


class LoggingObserver:
    """Default observer: one structlog event per callback, at the configured level.

    ``logger`` replaces the category loggers when given; it only needs methods
    named after log levels (``debug``, ``info``, ``error``, ...).
    """

    def __init__(
        self,
        *,
        logger: Any = None,
        request_level: str | None = "trace",
        reply_level: str | None = "trace",
        error_level: str | None = "error",
        debug: bool = False,
    ):
        self.logger = logger
        self.request_level = resolve_level(request_level)
        self.reply_level = resolve_level(reply_level)
        self.error_level = resolve_level(error_level)
        self.debug = debug

    def _emit(self, category: str, level: str | None, event: str, **fields: Any) -> None:
        if not level:
            return
        log = self.logger or LoggerRegistry.get(category)
        method = getattr(log, level, None) or getattr(log, "info")
        method(event, **fields)

    def request(self, reply_id: str, request: Any) -> None:
        if request is None:
            self._emit("request", self.request_level, "request_received", reply_id=reply_id)
            return
        fields = {"method": request.method, "url": request.url}
        if request.is_mutating:
            fields["headers"] = redact(dict(request.headers or {}))
            fields["body"] = redact(request.body)
        self._emit("request", self.request_level, "request_received", reply_id=reply_id, **fields)

    def reply(self, reply_id: str, status_code: int | None, body: dict | None) -> None:
        self._emit(
            "reply",
            self.reply_level,
            "reply_sent",
            reply_id=reply_id,
            status_code=status_code,
            body=json.dumps(body, default=str) if body is not None else None,
        )

    def error(self, error: BaseException | Any, reply_id: str | None = None) -> None:
        if error is None:
            return
        self._emit(
            "error",
            self.error_level,
            "reply_error",
            reply_id=reply_id,
            error=str(error),
            error_type=type(error).__name__,
        )

    def trace(self, event: str, **fields: Any) -> None:
        if self.debug:
            self._emit("dispatch", "debug", event, **fields)
