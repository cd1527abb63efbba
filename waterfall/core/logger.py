"""
Structured logging setup with correlation-id propagation and a dedicated audit trail.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from waterfall.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Guarantees every record carries a correlation_id attribute for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def _build_logger(name: str) -> logging.Logger:
    built = logging.getLogger(name)
    if not built.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        built.addHandler(handler)
    built.setLevel(settings.LOG_LEVEL.upper())
    built.propagate = False
    return built


logger = _build_logger("waterfall")
_audit_logger = _build_logger("waterfall.audit")


def get_logger_with_correlation(correlation_id: Optional[str]) -> logging.LoggerAdapter:
    """Returns an adapter stamping every message with the request correlation id."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id or "-"})


def audit_log(action: str, user: str, resource: str, details: Optional[Dict[str, Any]] = None) -> None:
    """
    Emits a single JSON line describing a business event.
    Audit entries are kept apart from operational logs so they can be shipped elsewhere.
    """
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "user": user,
        "resource": resource,
        "details": details or {},
    }
    correlation_id = (details or {}).get("correlation_id") or "-"
    _audit_logger.info(json.dumps(entry, default=str), extra={"correlation_id": correlation_id})
