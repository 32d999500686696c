"""
Structured logging setup.

structlog renders every event, and stdlib records (uvicorn, httpx) are routed
through the same processors so the output is uniform.

    from peerlink.logging import setup_logging, get_logger

    setup_logging(level="INFO", log_format="console")
    log = get_logger(__name__)
    log.info("node_configured", node="bridge-0")
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import structlog

REDACT_KEYS = {"authorization", "token", "authtoken", "password"}


def _redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in list(event_dict):
        if key.lower() in REDACT_KEYS and event_dict[key] is not None:
            event_dict[key] = "***"
    return event_dict


def _shared_processors() -> Iterable[Any]:
    yield structlog.stdlib.add_log_level
    yield structlog.stdlib.add_logger_name
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield structlog.contextvars.merge_contextvars
    yield _redact_secrets


def setup_logging(level: str | int = "INFO", log_format: str = "json") -> None:
    """Configure structlog + stdlib logging. Call once at process start."""
    if log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)

    shared = list(_shared_processors())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
