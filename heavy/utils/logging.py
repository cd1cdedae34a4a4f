"""structlog setup and context-carrying loggers.

Log lines are routed through the standard library so third-party output and
our own share handlers. Orchestrator, agent and API code each get a
:class:`LoggerAdapter` that stamps its own keys (``session_id``,
``agent_index``) onto every event.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, TextIO
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "make-it-heavy"

# Libraries that log every HTTP round trip at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "uvicorn.access")

# Run session id for orchestrations, request id for API calls
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (a fresh uuid4 when omitted) to the current task and return it."""
    value = correlation_id or str(uuid4())
    correlation_id_var.set(value)
    return value


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _build_processors(json_format: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.rich_traceback,
            )
        )
    return processors


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the root logger. Safe to call more than once.

    Args:
        level: Level name; unknown names fall back to INFO.
        json_format: One JSON object per line when True, coloured console
            output otherwise.
        log_file: Also append every record to this file.
        stream: Where console records go. The CLI passes stderr so that log
            lines never interleave with the answer on stdout.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=_build_processors(json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


class LoggerAdapter:
    """A named logger plus a fixed set of key/value pairs added to every event.

    ``bind`` and ``unbind`` return new adapters; the original is never mutated,
    so an agent can hand a narrowed logger to a helper without leaking keys
    back.
    """

    def __init__(self, name: str | None = None, **initial_context: Any):
        self._logger = get_logger(name)
        self._context = initial_context

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def _derive(self, context: dict[str, Any]) -> "LoggerAdapter":
        adapter = LoggerAdapter.__new__(LoggerAdapter)
        adapter._logger = self._logger
        adapter._context = context
        return adapter

    def bind(self, **new_context: Any) -> "LoggerAdapter":
        return self._derive({**self._context, **new_context})

    def unbind(self, *keys: str) -> "LoggerAdapter":
        return self._derive({k: v for k, v in self._context.items() if k not in keys})

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        getattr(self._logger, level)(event, **{**self._context, **kwargs})

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)

    def critical(self, event: str, **kwargs: Any) -> None:
        self._log("critical", event, **kwargs)

    def exception(self, event: str, **kwargs: Any) -> None:
        """Like ``error`` but attaches the active traceback."""
        self._log("exception", event, **kwargs)


def get_agent_logger(agent_index: int, session_id: str | None = None) -> LoggerAdapter:
    """Logger for one agent loop, tagged with its zero-based index."""
    context: dict[str, Any] = {"agent_index": agent_index}
    if session_id:
        context["session_id"] = session_id
    return LoggerAdapter("agent", **context)


def get_run_logger(session_id: str) -> LoggerAdapter:
    return LoggerAdapter("orchestrator", session_id=session_id)


def get_api_logger() -> LoggerAdapter:
    return LoggerAdapter("api")
