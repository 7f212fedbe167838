"""
Structured Logging
==================

structlog configuration for the agent, the CLI and the web API.

Debug runs get a colored console with rich tracebacks; everything else
emits one JSON object per line. Chinese task text is kept readable
(``ensure_ascii=False``).

Usage:
    from phone_agent.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Action executed", action="Tap", success=True)
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from phone_agent import __version__
from phone_agent.config import get_settings

# Chatty client libraries; their request lines duplicate our own events
_QUIET_LOGGERS = ("httpx", "httpcore", "groq", "google_genai", "uvicorn.access")


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every event with the service name and version."""
    event_dict.setdefault("app", "phone-agent")
    event_dict.setdefault("version", __version__)
    return event_dict


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Call once per process, before the first log line.

    Args:
        level: Log level name. Defaults to ``LOG_LEVEL``.
        json_logs: JSON output instead of the console renderer.
            Defaults to ``not DEBUG``.
    """
    settings = get_settings()
    level_no = getattr(logging, (level or settings.server.log_level).upper())
    if json_logs is None:
        json_logs = not settings.server.debug

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
    ]
    if json_logs:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.rich_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # uvicorn and the SDKs log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level_no)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Bind key/value pairs to every log line emitted inside the block.

    Usage:
        with LogContext(session_id="3f2a9c1b", task="打开微信"):
            logger.info("Step started")
    """

    def __init__(self, **context: Any) -> None:
        self.context = context

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context)
