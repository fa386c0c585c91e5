"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from lending_ledger.config import settings


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


def log_loan_created(
    request_id: str,
    loan_id: str,
    customer_id: str,
    principal: Decimal,
    monthly_emi: Decimal,
    duration_ms: float,
) -> None:
    """Log structured loan creation outcome"""
    logging.info(
        "Loan created",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "customer_id": customer_id,
            "step": "loan_created",
            "principal": str(principal),
            "monthly_emi": str(monthly_emi),
            "duration_ms": duration_ms,
        },
    )


def log_payment_applied(
    request_id: str,
    loan_id: str,
    payment_id: str,
    payment_type: str,
    status: str,
    emis_left: int,
    duration_ms: float,
) -> None:
    """Log structured payment outcome"""
    logging.info(
        "Payment applied",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "payment_id": payment_id,
            "step": "payment_applied",
            "payment_type": payment_type,
            "loan_status": status,
            "emis_left": emis_left,
            "duration_ms": duration_ms,
        },
    )
