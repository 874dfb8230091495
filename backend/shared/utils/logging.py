"""
structlog configuration for live-sync.

Every entry carries the service and instance id; a reconciliation pass additionally
binds `pass_id` and `sport` for its duration so one pass can be followed end to end.
Provider credentials never reach the output.
"""
from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping

import structlog
from shared.config import Settings, get_settings

REDACTED = "***"
_SECRET_KEYS = frozenset({"api_key", "x-apisports-key", "password", "authorization"})
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "sqlalchemy.engine", "sqlalchemy.pool")


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential-looking keys, including inside a logged `headers` mapping."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = REDACTED
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            k: (REDACTED if k.lower() in _SECRET_KEYS else v) for k, v in headers.items()
        }
    return event_dict


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.environment.value == "dev":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(service_name: str, extra_context: dict[str, Any] | None = None) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Args:
        service_name: Bound as `service` on every entry.
        extra_context: Further static fields bound to every entry.
    """
    settings = get_settings()
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(settings)],
            foreign_pre_chain=pre_chain,
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=service_name,
        instance_id=settings.instance_id,
        **(extra_context or {}),
    )


@contextmanager
def pass_context(sport: str, pass_id: str | None = None) -> Iterator[str]:
    """Bind `pass_id` and `sport` for the enclosed block; yields the pass id."""
    pass_id = pass_id or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(pass_id=pass_id, sport=sport):
        yield pass_id


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
