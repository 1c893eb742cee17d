"""
Centralized logging configuration.

Every module logs through ``get_logger`` with keyword context. Claim lifecycle
transitions go to the ``business_claims.audit`` logger, which can be routed to its
own rotating JSON file so the audit trail survives independently of debug noise.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from pathlib import Path

ROOT_LOGGER_NAME = "business_claims"
AUDIT_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.audit"
PERFORMANCE_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.performance"

_STANDARD_FIELDS = ("claim_id", "target_id", "request_id")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; claim/target/request ids are lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        extra_data: Dict[str, Any] = dict(getattr(record, "extra_data", None) or {})
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _STANDARD_FIELDS:
            if key in extra_data:
                entry[key] = extra_data.pop(key)
        if extra_data:
            entry["context"] = extra_data
        entry["source"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Wrapper around a standard logger accepting keyword context:

        logger.info("Claim approved", claim_id=claim.id, reviewer_id=reviewer_id)

    ``None`` values are dropped so optional context does not clutter the output.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_extra(self, level: int, message: str, **kwargs):
        exc_info = kwargs.pop("exc_info", None)
        extra_data = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"extra_data": extra_data})

    def debug(self, message: str, **kwargs):
        self._log_with_extra(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log_with_extra(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_extra(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_extra(logging.ERROR, message, **kwargs)


def _rotating_json_handler(filename: str, level: str) -> Dict[str, Any]:
    Path(filename).parent.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": filename,
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "formatter": "json",
        "level": level,
    }


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    audit_log_file: Optional[str] = None,
) -> None:
    """
    Setup application logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for JSON log output of the whole service
        enable_console: Whether to log to console
        audit_log_file: Optional separate JSON file receiving only lifecycle events
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "standard",
            "level": log_level,
        }
    if log_file:
        handlers["file"] = _rotating_json_handler(log_file, log_level)

    shared: List[str] = list(handlers)
    audit_handlers = list(shared)
    if audit_log_file:
        handlers["audit_file"] = _rotating_json_handler(audit_log_file, "INFO")
        audit_handlers.append("audit_file")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER_NAME: {"level": log_level, "handlers": shared, "propagate": False},
            # Lifecycle events are always recorded, whatever the service log level
            AUDIT_LOGGER_NAME: {"level": "INFO", "handlers": audit_handlers, "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": shared, "propagate": False},
            "aiohttp.client": {"level": "WARNING", "handlers": shared, "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING", "handlers": shared, "propagate": False},
        },
        "root": {"level": log_level, "handlers": shared},
    })


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger namespaced under the service root logger."""
    if name.startswith(ROOT_LOGGER_NAME):
        return StructuredLogger(name)
    return StructuredLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    user_id: Optional[str] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Record a claim lifecycle transition on the audit trail.

    Args:
        event_type: Lifecycle event (e.g. 'claim_submitted', 'claim_approved')
        details: Event-specific details; ``claim_id`` and ``target_id`` are expected
        user_id: Acting identity (claimant or reviewer)
        request_id: Request ID for tracing
    """
    StructuredLogger(AUDIT_LOGGER_NAME).info(
        f"Claim event: {event_type}",
        event_type=event_type,
        actor_id=user_id,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    """Log endpoint timing under the performance logger."""
    StructuredLogger(PERFORMANCE_LOGGER_NAME).info(
        f"Performance: {operation}",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **(additional_data or {})
    )
