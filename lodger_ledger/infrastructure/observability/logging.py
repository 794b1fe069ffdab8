"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from lodger_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_command(
    request_id: str,
    tenancy_id: str,
    command: str,
    outcome: str,
    duration_ms: float,
) -> None:
    """Log structured command outcome for audit"""
    logging.info(
        "Command completed",
        extra={
            "request_id": request_id,
            "tenancy_id": tenancy_id,
            "step": "command_complete",
            "command": command,
            "outcome": outcome,
            "duration_ms": duration_ms,
        },
    )


def log_immediate_termination(tenancy_id: str, notice_id: str, issued_by: str) -> None:
    """0-day notices end the tenancy at once and cannot be undone"""
    logging.warning(
        "Tenancy terminated with immediate effect",
        extra={
            "audit_event": "immediate_termination",
            "tenancy_id": tenancy_id,
            "notice_id": notice_id,
            "issued_by": issued_by,
        },
    )


def log_integrity_violation(tenancy_id: str, detail: str) -> None:
    logging.critical(
        "Ledger integrity violation; tenancy placed on hold",
        extra={
            "audit_event": "integrity_violation",
            "tenancy_id": tenancy_id,
            "detail": detail,
        },
    )
