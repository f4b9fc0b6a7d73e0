"""
Structured logging for draft persistence and attempt limiting.
Field values are sanitized before they reach a log line.
"""

import logging
from typing import Any, Dict, List

from ..core.config import debug_enabled

SENSITIVE_FIELDS = ['password', 'secret', 'token', 'ssn', 'card']


class StructuredLogger:
    """Structured logger for draft store, sync and limiter operations."""

    def __init__(self, name: str = "formdraft"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_debug(self, enabled: bool) -> None:
        """Switch between DEBUG and INFO levels."""
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_draft_operation(self, operation: str, key: str, field: str = None, value: Any = None, status: str = "success"):
        """Log a draft store operation."""
        details = {"key": key}
        if field is not None:
            details["field"] = field
            if value is not None:
                details["value"] = sanitize_value(field, value)

        self.log_operation(f"draft.{operation}", status, details, level=logging.DEBUG)

    def log_restore(self, key: str, fields: List[str], status: str = "success", reason: str = None):
        """Log a restore attempt (fields only, never values)."""
        details = {"key": key, "fields": sorted(fields), "field_count": len(fields)}
        if reason:
            details["reason"] = reason

        self.log_operation("draft.restore", status, details)

    def log_freeze(self, submit_count: int, ceiling: int):
        """Log an attempt limiter entering the frozen state."""
        self.log_operation("attempts.freeze", "frozen", {
            "submit_count": submit_count,
            "ceiling": ceiling
        })

    def log_revert(self, fields: List[str]):
        """Log reversion of dirty or invalid fields."""
        self.log_operation("attempts.revert", "success", {
            "fields": sorted(fields),
            "field_count": len(fields)
        })

    def log_storage_fallback(self, medium: str, reason: str, fallback: str):
        """Log a storage degradation."""
        self.log_operation("storage.fallback", "degraded", {
            "medium": medium,
            "fallback": fallback,
            "reason": str(reason)[:100]
        }, level=logging.WARNING)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def sanitize_value(field: str, value: Any, reveal_sensitive: bool = False) -> Any:
    """Sanitize a single field value for logging."""
    lowered = field.lower()
    if not reveal_sensitive and any(marker in lowered for marker in SENSITIVE_FIELDS):
        return "[REDACTED]"
    return sanitize_payload(value, reveal_sensitive)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or not any(marker in str(k).lower() for marker in sensitive_fields):
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:50] + "..." if len(payload) > 50 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()
logger.set_debug(debug_enabled())
