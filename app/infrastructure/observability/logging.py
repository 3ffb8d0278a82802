"""
structlog configuration shared by the API process and the reminder worker.

Every entry is a JSON line on stdout tagged with service="onboarding-reminders".
"""

import logging
import sys
from typing import Any

import structlog

SERVICE_NAME = "onboarding-reminders"

# Chatty libraries capped at WARNING
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "psycopg.pool")


def _tag_service(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging with JSON rendering."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _tag_service,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """One line per HTTP request; 4xx/5xx at warning level."""
    logger = get_logger("http")
    log = logger.warning if status_code >= 400 else logger.info
    log(
        "HTTP request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
