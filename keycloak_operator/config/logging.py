"""
Structured logging for the operator using structlog.

Events are snake_case names with keyword fields. Every event emitted while a
Keycloak resource is being reconciled carries that resource's name and
namespace (see `keycloak_context`).
"""
import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor

from keycloak_operator.config.settings import settings

QUIET_LOGGERS = ("kubernetes_asyncio", "aiohttp", "asyncio")


def add_operator_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events with the operator build and the namespace it watches."""
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    event_dict.setdefault("environment", settings.environment)
    event_dict.setdefault("watch_namespace", settings.watch_namespace or "*")
    return event_dict


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(json_logs: Optional[bool] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_logs: Render JSON lines; defaults to True in production
    """
    if json_logs is None:
        json_logs = settings.is_production

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_operator_context,
        structlog.processors.format_exc_info,
        _renderer(json_logs),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def keycloak_context(name: str, namespace: str) -> Iterator[None]:
    """Bind a Keycloak resource's identity to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(keycloak=name, namespace=namespace):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
