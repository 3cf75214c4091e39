"""
Structured operation logging for the taxonomy service.
Every committed, rejected or conflicting mutation is logged with its details.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['token', 'password', 'secret', 'document', 'content']


class StructuredLogger:
    """Structured logger for taxonomy operations."""

    def __init__(self, name: str = "curator_taxonomy"):
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

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {sanitize_payload(details)}"

        if status in ("rejected", "conflict", "failed"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_option_change(self, operation: str, category: str, option_id: str, revision: int, details: Dict[str, Any] = None):
        """Log a committed option mutation."""
        log_details = {"category": category, "option_id": option_id, "revision": revision}
        if details:
            log_details.update(details)

        self.log_operation(f"variables.{operation}", "committed", log_details)

    def log_validation_rejected(self, operation: str, violations: List[Any]):
        """Log a staged mutation rejected by the validator."""
        codes = [getattr(v, "code", str(v)) for v in violations]
        log_details = {
            "violation_count": len(codes),
            "codes": sorted(set(codes)),
        }
        self.log_operation(f"variables.{operation}", "rejected", log_details)

    def log_conflict(self, operation: str, expected: int, actual: int):
        """Log an optimistic revision mismatch."""
        self.log_operation(f"variables.{operation}", "conflict", {
            "expected_revision": expected,
            "actual_revision": actual,
        })

    def log_import(self, status: str, counts: Dict[str, int], revision: int = None, violation_count: int = 0):
        """Log a bulk import attempt."""
        log_details = {"counts": counts, "violation_count": violation_count}
        if revision is not None:
            log_details["revision"] = revision

        self.log_operation("variables.import", status, log_details)

    def log_export(self, revision: int, size_bytes: int):
        """Log a document export."""
        self.log_operation("variables.export", "success", {
            "revision": revision,
            "size_bytes": size_bytes,
        })

    def log_admin_access(self, granted: bool, reason: str = ""):
        """Log an admin gate decision."""
        status = "granted" if granted else "failed"
        self.log_operation("admin.access", status, {"reason": reason[:100]})

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Redact sensitive keys and truncate long strings before logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
