"""
Error handling utilities for sanitizing user-facing messages and logging.

Provides consistent error handling across the garden API:
- Sanitizes error messages to prevent information leakage
- Logs detailed error information for debugging
- Provides user-friendly error messages
"""

from __future__ import annotations
from flask import current_app

# User-friendly generic error messages
GENERIC_MESSAGES = {
    "database": "We're experiencing technical difficulties. Please try again.",
    "validation": "The information provided is invalid. Please check and try again.",
    "not_found": "Plant not found",
    "permission": "You don't have permission to perform this action.",
}


def sanitize_error(
    error: Exception | str,
    error_type: str = "database",
    log_prefix: str = ""
) -> str:
    """
    Sanitize error message for user display and log full details.

    Args:
        error: The exception (or service error string) that occurred
        error_type: Type of error (database, validation, not_found, permission)
        log_prefix: Optional prefix for log message context

    Returns:
        User-friendly error message

    Examples:
        >>> entry, error = garden.mark_watered(user_id, entry_id)
        >>> if error == "database":
        ...     return jsonify({"error": sanitize_error(error, "database", "Water plant")}), 500
    """
    error_message = str(error)
    log_message = f"{log_prefix}: {error_message}" if log_prefix else error_message

    if error_type in ["validation", "not_found"]:
        # Expected errors (user mistakes), log as info
        current_app.logger.info(f"Expected error - {log_message}")
    else:
        current_app.logger.error(f"Unexpected error - {log_message}")

    return GENERIC_MESSAGES.get(error_type, GENERIC_MESSAGES["database"])


def log_warning(message: str, **context) -> None:
    """
    Log a warning with optional context.

    Examples:
        >>> log_warning("Cron secret mismatch", remote_addr="10.0.0.7")
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"{message} | Context: {context_str}"

    current_app.logger.warning(message)


def log_info(message: str, **context) -> None:
    """
    Log an info message with optional context.

    Examples:
        >>> log_info("Plant added", user_id="123", plant_name="Monstera")
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"{message} | Context: {context_str}"

    current_app.logger.info(message)
