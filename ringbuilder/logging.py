"""structlog configuration for the API process.

Development gets the colored console renderer; every other environment
emits one JSON object per line, tagged with the service name and
environment so catalog-refresh and analysis events can be filtered in the
log pipeline. ``exc_info`` on an event is rendered as a structured
traceback in JSON mode.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from ringbuilder.config import settings

SERVICE_NAME = "ringbuilder"

# Third-party loggers that are chatty at INFO (one line per HTTP request).
_QUIET_LOGGERS = ("httpx", "httpcore", "anthropic")


class _TeeWriter:
    """Write log lines to stdout and append them to ``LOG_FILE``.

    A file that cannot be opened or written is dropped with a warning on
    stderr; stdout logging carries on.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            self._disable(f"could not open: {exc}")

    def _disable(self, reason: str) -> None:
        self._file = None
        print(f"WARNING: log file {self._path!r} disabled ({reason})", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError) as exc:
            self._disable(f"write failed: {exc}")

    def flush(self) -> None:
        sys.stdout.flush()


def _add_service(
    _logger: structlog.types.WrappedLogger,
    _method: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("env", settings.environment)
    return event_dict


def configure_logging() -> None:
    """Set up structlog once, at import of ``ringbuilder.main``."""
    development = settings.environment == "development"
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if development:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            _add_service,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    if settings.log_file:
        factory = structlog.PrintLoggerFactory(file=_TeeWriter(settings.log_file))  # type: ignore[arg-type]
    else:
        factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=factory,
        cache_logger_on_first_use=True,
    )
