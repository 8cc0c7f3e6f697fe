"""Structured JSON logging for underwriting and lifecycle events"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping every record with UTC time, level and service name"""

    def __init__(self, *args, service_name: str = "lending-engine", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "lending-engine") -> None:
    """Route the root logger to stdout as one JSON object per line"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", service_name=service_name)
    )
    root.addHandler(handler)


def _log_step(message: str, request_id: str, step: str, **fields: Any) -> None:
    logging.info(message, extra={"request_id": request_id, "step": step, **fields})


def log_evaluation(
    request_id: str,
    borrower_id: str | None,
    loan_type: str,
    eligible: bool,
    risk_score: int,
    duration_ms: float,
) -> None:
    """Log an underwriting outcome for eligibility-rate analysis"""
    _log_step(
        "Evaluation completed",
        request_id,
        "evaluation_complete",
        borrower_id=borrower_id,
        loan_type=loan_type,
        eligibility="eligible" if eligible else "ineligible",
        risk_score=risk_score,
        duration_ms=round(duration_ms, 2),
    )


def log_transition(request_id: str, application_id: str, event: str, old_state: str, new_state: str) -> None:
    _log_step(
        "Lifecycle transition",
        request_id,
        "lifecycle_transition",
        application_id=application_id,
        lifecycle_event=event,
        old_state=old_state,
        new_state=new_state,
    )
