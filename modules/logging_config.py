"""
Structured logging for the canary runner Lambda.

Log lines are JSON objects written to stdout, which Lambda forwards to
CloudWatch Logs. Invocation-scoped fields (canary name, client run id) are
bound through structlog contextvars by the handler.

structlog documentation: https://www.structlog.org/en/stable/
"""
import logging
from typing import Any

import structlog


def configure_logging(*, service_name: str, level: str) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str):
    return structlog.get_logger(name)


def bind_invocation_context(**values: Any) -> None:
    """Replace the invocation-scoped log fields, dropping any that are None."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_invocation_context() -> None:
    # Lambda reuses the process between invocations
    structlog.contextvars.clear_contextvars()
