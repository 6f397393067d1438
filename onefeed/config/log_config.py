"""structlog configuration shared by the API, the worker and the scripts."""

import logging
import sys
from typing import Any, Dict

import structlog

_SECRET_KEYS = {
    "password", "pwd", "secret", "token", "api_key", "apikey",
    "authorization", "database_url", "redis_url",
}


def _add_service(service_name: str):
    def _inner(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict
    return _inner


def _redact_secrets(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in list(event_dict.keys()):
        if str(key).lower() in _SECRET_KEYS:
            event_dict[key] = "***redacted***"
    return event_dict


def configure_logging(service_name: str = "onefeed", level: str = "INFO", json: bool = True) -> None:
    """Configure one global structlog stack. Call once at process start."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service(service_name),
            _redact_secrets,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
