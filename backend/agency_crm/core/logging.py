"""
Structured logging setup.

structlog renders key-value events on top of stdlib logging:
- console renderer for development
- JSON renderer for staging/production log shipping
- tenant slug bound per request through structlog.contextvars
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

from agency_crm.core.config import Settings, settings as default_settings

_configured = False


def _get_log_level(level_name: str) -> int:
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get((level_name or "").upper(), logging.INFO)


def get_processors(cfg: Settings) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if cfg.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=not cfg.is_production))

    return processors


def configure_logging(cfg: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging + structlog once per process.
    Safe to call again (e.g. when tests build the app repeatedly).
    """
    global _configured
    if _configured:
        return

    cfg = cfg or default_settings

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=_get_log_level(cfg.LOG_LEVEL),
    )

    structlog.configure(
        processors=get_processors(cfg),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Example:
        >>> log = get_logger(__name__)
        >>> log.info("ticket_created", ticket_id="...", client_slug="demo")
    """
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """Attach values (tenant_slug, route_area, ...) to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v is not None})


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
