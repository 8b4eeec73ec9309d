"""structlog setup for the estate ledger.

Console output in development, one JSON object per line otherwise. The
service binds estate id, actor and correlation id for each command with
``LogContext`` so every line logged inside the command carries them.
"""

import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from estate_ledger.config import Settings, get_settings

FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s"


def _stringify_ledger_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    # Ids and amounts are logged as the strings the event payloads use.
    for key, value in event_dict.items():
        if isinstance(value, (UUID, Decimal)):
            event_dict[key] = str(value)
    return event_dict


def _deployment_fields(settings: Settings) -> Processor:
    fields = {"app": settings.app_name, "environment": settings.environment.value}

    def add_fields(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_fields


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _stringify_ledger_values,
    ]


def get_console_processors() -> list[Processor]:
    return [
        *_shared_processors(),
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def get_json_processors(settings: Settings) -> list[Processor]:
    """JSON lines tagged with the app name and environment."""
    return [
        *_shared_processors(),
        _deployment_fields(settings),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger it writes through.

    Loggers are cached after first use except under the testing
    environment, where tests reconfigure logging repeatedly.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.value)

    if settings.log_format == "json":
        processors = get_json_processors(settings)
    else:
        processors = get_console_processors()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=not settings.is_testing,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if settings.log_file:
        _add_file_handler(settings.log_file, level)


def _add_file_handler(log_file: Path, level: int) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, e.g. ``get_logger(__name__).info("estate_saved")``."""
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind log fields for the duration of a ``with`` block.

    ``None`` values are dropped so optional ids can be passed straight
    through::

        with LogContext(estate_id=str(estate_id), correlation_id=intent.correlation_id):
            logger.info("debt_paid")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = {key: value for key, value in kwargs.items() if value is not None}

    def __enter__(self) -> "LogContext":
        bind_context(**self.kwargs)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self.kwargs.keys())
