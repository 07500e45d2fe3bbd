"""Logging configuration for ffcmd.

ffcmd only emits records through ``logging.getLogger(__name__)``; nothing is
configured on import. Applications (and the test suite) call
``setup_logging`` to get either human-readable lines with the ``extra``
fields appended, or JSON records via python-json-logger. Records emitted
while a command runs carry that run's ``run_id``.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
import json
import logging
from logging.config import dictConfig
import sys
from typing import Any, Literal

_run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)


def set_run_id(run_id: str | None) -> None:
    """Set the run ID attached to records logged in the current context."""
    _run_id_var.set(run_id)


def get_run_id() -> str | None:
    """Return the run ID of the current context, if any."""
    return _run_id_var.get()


@contextmanager
def run_id_context(run_id: str) -> Iterator[None]:
    """Tag records logged inside the block with ``run_id``."""
    token = _run_id_var.set(run_id)
    try:
        yield
    finally:
        _run_id_var.reset(token)


class RunIdFilter(logging.Filter):
    """Inject the current run ID into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        run_id = _run_id_var.get()
        if run_id is not None:
            record.run_id = run_id
        return True


_should_include_stacktrace: bool = False

_STANDARD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
        "run_id",
    }
)


def _format_value(value: Any) -> str:
    if isinstance(value, dict | list | tuple):
        try:
            return json.dumps(value, sort_keys=True, separators=(", ", ":"))
        except TypeError:
            return f"[Unserializable Value: {type(value)}]"  # type: ignore
    return str(value)


def _cause_chain(error: BaseException) -> list[str]:
    messages: list[str] = []
    current: BaseException | None = error
    while current is not None:
        messages.append(str(current))
        current = current.__cause__ or current.__context__
    return messages


class HumanReadableExtrasFormatter(logging.Formatter):
    """Format records as one human-readable line followed by extras.

    The line reads ``<time> <LEVEL> [<logger>] RunID:<id> key:value ... - msg``.
    Exceptions are rendered either as a full traceback or, when stack traces
    are disabled, as the chain of error messages.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: Mapping[str, Any] | None = None,
    ):
        super().__init__(fmt, datefmt, style, validate, defaults=defaults)

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            f"[{record.name}]",
        ]

        run_id = getattr(record, "run_id", None)
        if run_id is not None:
            parts.append(f"RunID:{run_id}")

        parts.extend(
            f"{key}:{_format_value(value)}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )

        message = record.getMessage()
        parts.append(f"- {message}" if message else "-")
        line = " ".join(parts)

        if record.exc_info and record.exc_info[1] is not None:
            if _should_include_stacktrace:
                if not record.exc_text:
                    record.exc_text = self.formatException(record.exc_info)
                line += "\n" + record.exc_text
            else:
                chain = _cause_chain(record.exc_info[1])
                line += f"\nError: {chain[0]}"
                for cause in chain[1:]:
                    line += f"\n  Caused by: {cause}"

        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)

        return line


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "run_id_filter": {
            "()": RunIdFilter,
        },
    },
    "formatters": {
        "human_readable_formatter": {
            "()": HumanReadableExtrasFormatter,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json_formatter": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "formatter": "human_readable_formatter",
            "stream": "ext://sys.stderr",
            "filters": ["run_id_filter"],
        },
    },
    "loggers": {
        "ffcmd": {
            "handlers": ["console_handler"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


def setup_logging(
    log_format_type: Literal["human", "json"],
    app_log_level_name: str,
    include_stacktrace: bool,
) -> None:
    """Configure the ``ffcmd`` logger.

    Args:
        log_format_type: Format for logs ('human' or 'json').
        app_log_level_name: Logging level name (e.g., 'INFO', 'DEBUG').
        include_stacktrace: Whether to include full stack traces in error logs.
    """
    global _should_include_stacktrace
    _should_include_stacktrace = include_stacktrace

    level = app_log_level_name.upper()
    if not isinstance(getattr(logging, level, None), int):
        print(
            f"Warning: Invalid log level '{app_log_level_name}'. Defaulting to INFO.",
            file=sys.stderr,
        )
        level = "INFO"
    LOGGING_CONFIG["loggers"]["ffcmd"]["level"] = level

    LOGGING_CONFIG["handlers"]["console_handler"]["formatter"] = (
        "json_formatter" if log_format_type.lower() == "json" else "human_readable_formatter"
    )

    dictConfig(LOGGING_CONFIG)
