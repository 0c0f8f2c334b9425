"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from plugboleto_gateway.config import settings


class CustomJsonFormatter(JsonFormatter):
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


def log_issuance(
    submitted: int,
    success: int,
    errors: int,
    unresolved: int,
    duration_ms: float,
) -> None:
    """Log structured issuance outcome"""
    logging.info(
        "Issuance completed",
        extra={
            "step": "issuance_complete",
            "submitted": submitted,
            "success": success,
            "errors": errors,
            "unresolved": unresolved,
            "duration_ms": duration_ms,
        },
    )


def log_return_file(
    protocol: str,
    titles: int,
    unreconciled: int,
    timed_out: bool,
    duration_ms: float,
) -> None:
    """Log structured return file outcome"""
    logging.info(
        "Return file processed",
        extra={
            "step": "return_file_complete",
            "protocol": protocol,
            "titles": titles,
            "unreconciled": unreconciled,
            "timed_out": timed_out,
            "duration_ms": duration_ms,
        },
    )


def log_print(protocol: str, size_bytes: int, attempts: int, duration_ms: float) -> None:
    """Log structured print job outcome"""
    logging.info(
        "Print job materialized",
        extra={
            "step": "print_complete",
            "protocol": protocol,
            "size_bytes": size_bytes,
            "attempts": attempts,
            "duration_ms": duration_ms,
        },
    )
