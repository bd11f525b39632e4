"""Structured JSON logging."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "nmwguard"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp and service metadata."""

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger."""
    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


def log_verdict(
    worker_id: str | None,
    pay_period_id: str | None,
    rag_status: str,
    effective_rate: Decimal,
    required_rate: Decimal | None,
    duration_ms: float,
) -> None:
    """Log one structured record per worker compliance verdict."""
    logging.getLogger("nmwguard.verdict").info(
        "Compliance verdict",
        extra={
            "worker_id": worker_id,
            "pay_period_id": pay_period_id,
            "step": "verdict",
            "rag_status": rag_status,
            "effective_rate": str(effective_rate),
            "required_rate": str(required_rate) if required_rate is not None else None,
            "duration_ms": round(duration_ms, 2),
        },
    )
