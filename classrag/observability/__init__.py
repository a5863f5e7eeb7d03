"""
Observability module.

Provides logging configuration and safe structured-logging helpers.
"""

from classrag.observability.logger import configure_logging, get_logger
from classrag.observability.log_utils import log_exception_with_context, safe_log_value

__all__ = [
    "configure_logging",
    "get_logger",
    "log_exception_with_context",
    "safe_log_value",
]
