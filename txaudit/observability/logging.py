"""Structured logging built on structlog.

Two kinds of loggers live here: the process-wide diagnostic logger
(``setup_logging`` / ``get_logger``) and the per-coordinator audit backend
(``build_backend_logger``), which never touches global structlog state so
several coordinators can write to different sinks side by side.
"""

import re
import sys
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal, Protocol, TextIO, cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger
from structlog.typing import FilteringBoundLogger

LogFormat = Literal["json", "console"]

LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

# Matched case-insensitively against every key, at any depth
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "x-api-key",
    "auth",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "credential",
    "credentials",
    "access_token",
    "refresh_token",
    "private_key",
    "ssn",
    "card_number",
    "cvv",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")

REDACTED = "[REDACTED]"


class Hook(Protocol):
    """Observer invoked with the level and fields of every emitted entry."""

    def __call__(self, level: str, fields: Mapping[str, Any]) -> None: ...


class SensitiveFieldRedactor:
    """Processor that masks sensitive values before rendering.

    Keys listed in ``keys`` are replaced wholesale, which covers captured
    HTTP headers such as ``Authorization``. String values are scanned for
    e-mail addresses and SSNs so request bodies and SQL parameters do not
    leak them.
    """

    def __init__(self, keys: Iterable[str] = SENSITIVE_KEYS) -> None:
        self.keys = frozenset(k.lower() for k in keys)

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact(event_dict))

    def _redact(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                key: REDACTED if str(key).lower() in self.keys else self._redact(item)
                for key, item in value.items()
            }
        if isinstance(value, list | tuple):
            return [self._redact(item) for item in value]
        if isinstance(value, str):
            return SSN_PATTERN.sub("[SSN]", EMAIL_PATTERN.sub("[EMAIL]", value))
        return value


class HookDispatcher:
    """Processor that hands every entry to registered hooks.

    Hooks receive a copy, so they cannot alter what gets rendered.
    """

    def __init__(self, hooks: Iterable[Hook] = ()) -> None:
        self.hooks: list[Hook] = list(hooks)

    def add(self, hook: Hook) -> None:
        self.hooks.append(hook)

    def __call__(
        self,
        _logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        for hook in self.hooks:
            hook(method_name, dict(event_dict))
        return event_dict


def _renderer(log_format: LogFormat | Processor) -> Processor:
    if callable(log_format):
        return log_format
    if log_format == "json":
        return structlog.processors.JSONRenderer(default=str)
    return structlog.dev.ConsoleRenderer(colors=False)


def build_backend_logger(
    *,
    log_format: LogFormat | Processor = "json",
    hooks: HookDispatcher | None = None,
    redact_pii: bool = True,
    level: str = "INFO",
    logger_factory: Callable[[], WrappedLogger] | None = None,
) -> FilteringBoundLogger:
    """Build an independent structlog logger for audit entries.

    Args:
        log_format: "json", "console" or a structlog renderer processor
        hooks: Dispatcher whose hooks observe every entry
        redact_pii: Whether to mask sensitive fields
        level: Minimum level emitted
        logger_factory: Returns the wrapped sink; defaults to stderr

    Returns:
        A filtering bound logger with its own processor chain
    """
    processors: list[Processor] = [structlog.processors.add_log_level]
    if redact_pii:
        processors.append(SensitiveFieldRedactor())
    # Timestamp after redaction so its digits are never pattern-matched
    processors.append(structlog.processors.TimeStamper(fmt="iso"))
    if hooks is not None:
        processors.append(hooks)
    processors.append(_renderer(log_format))

    sink = logger_factory() if logger_factory else structlog.PrintLogger(sys.stderr)
    return cast(
        FilteringBoundLogger,
        structlog.wrap_logger(
            sink,
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(
                LEVELS.get(level.upper(), 20)
            ),
            context_class=dict,
        ),
    )


def setup_logging(
    level: str = "INFO",
    format: LogFormat = "json",
    redact_pii: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure the library's own diagnostic logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: "json" for production, "console" for development
        redact_pii: Whether to redact sensitive fields
        stream: Output stream, stderr by default
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if redact_pii:
        processors.append(SensitiveFieldRedactor())
    processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors.append(_renderer(format))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            LEVELS.get(level.upper(), 20)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a diagnostic logger bound to the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
