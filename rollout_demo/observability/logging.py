from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from rollout_demo.config import Settings


_CONFIGURED = False

# npm/winston level names map onto the nearest stdlib level.
_LEVEL_ALIASES: dict[str, int] = {
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "http": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG,
}


def parse_log_level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    return _LEVEL_ALIASES.get(name.strip().lower(), default)



def service_fields(settings: Settings) -> dict[str, str]:
    """Identity fields added to every log record."""

    return {
        "service": settings.service_name,
        "version": settings.app_version,
        "commit": settings.git_commit,
        "environment": settings.environment,
    }


def _stamp(fields: Mapping[str, str]) -> Processor:
    def processor(_: Any, __: str, event_dict: EventDict) -> EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def _json_handler(pre_chain: list[Processor]) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=pre_chain,
        )
    )
    return handler


def configure_logging(
    level: int = logging.INFO,
    *,
    fields: Mapping[str, str] | None = None,
    force: bool = False,
) -> None:
    """Route structlog and stdlib records to stdout as one JSON object per line.

    ``fields`` (usually :func:`service_fields`) are added to every record, including
    uvicorn's own. Records below ``level`` are dropped before rendering. Sink write
    failures go through ``logging.Handler.handleError`` and never reach callers.
    Calling again is a no-op unless ``force`` is set.
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _stamp(dict(fields or {})),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.dict_tracebacks,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = _json_handler(pre_chain)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn installs its own handlers; send its records through ours instead.
    for name in ("uvicorn", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
        uvicorn_logger.setLevel(level)

    _CONFIGURED = True
