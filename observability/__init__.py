"""Observability: logging setup and optional Logfire tracing.

setup_logging:
    Console + rotating file logging, text or JSON, with run_id context.

set_run_context / new_run_id:
    Tag all log lines of one drain cycle or webhook request.

setup_tracing / trace_operation:
    Optional Logfire spans (ENABLE_LOGFIRE=true).

Example:
    >>> from observability import setup_logging, setup_tracing
    >>> setup_logging(config)
    >>> setup_tracing(enabled=config.enable_logfire, token=config.logfire_token)
"""

from observability.logging import setup_logging, set_run_context, reset_run_context, new_run_id
from observability.tracing import setup_tracing, trace_operation, TracingContext

__all__ = [
    "setup_logging",
    "set_run_context",
    "reset_run_context",
    "new_run_id",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]
