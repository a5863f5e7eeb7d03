"""
Logging utilities for safe structured logging.

Converts arbitrary context values (UUIDs, vectors, byte payloads) into
short strings before they reach a log record's extra fields.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any
from uuid import UUID


def safe_log_value(value: Any, max_length: int = 500) -> str:
    """
    Safely convert any value to a string for logging.

    Sequences and payloads are summarized rather than dumped, so an
    embedding vector or a PDF buffer never floods the log.

    Args:
        value: Value to convert
        max_length: Maximum length before truncating

    Returns:
        str: Safe string representation
    """
    try:
        if value is None:
            return "None"
        if isinstance(value, str):
            val_str = value
        elif isinstance(value, UUID):
            val_str = str(value)
        elif isinstance(value, (bytes, bytearray)):
            val_str = f"<{len(value)} bytes>"
        elif isinstance(value, (list, tuple)):
            val_str = f"{type(value).__name__}({len(value)} items)"
        elif isinstance(value, dict):
            val_str = f"dict({len(value)} keys)"
        else:
            val_str = str(value)

        if len(val_str) > max_length:
            return val_str[:max_length] + f"... (truncated, {len(val_str)} total)"
        return val_str
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log an exception with full context.

    Domain exceptions contribute their ``details`` dict to the context.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance
        **context: Additional context dict
    """
    details = getattr(exc, "details", None) or {}
    merged = {**details, **context}
    safe_context = {key: safe_log_value(val) for key, val in merged.items()}
    safe_context.update({
        "error_type": type(exc).__name__,
        "error_msg": str(exc),
    })
    logger.error(message, extra=safe_context, exc_info=exc)
