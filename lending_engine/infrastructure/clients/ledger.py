"""Ledger webhook client: publishes LOAN_DISBURSED events, retried with exponential backoff"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from lending_engine.config import settings
from lending_engine.domain.models import Disbursement, LoanApplication
from lending_engine.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)

DISBURSED_EVENT = "LOAN_DISBURSED"


def disbursement_event(application: LoanApplication, disbursement: Disbursement) -> Dict[str, Any]:
    """Ledger payload for a completed disbursement; amounts in minor units"""
    return {
        "event": DISBURSED_EVENT,
        "application_id": application.application_id,
        "borrower_id": application.borrower_id,
        "loan_type": application.loan_type.value,
        "account_number": disbursement.account_number,
        "amount_cents": disbursement.principal_cents,
        "interest_rate": disbursement.interest_rate,
        "start_date": disbursement.start_date.isoformat(),
        "maturity_date": disbursement.maturity_date.isoformat(),
        "currency": settings.currency_code,
    }


class LedgerClient:
    """Posts loan events to the accounting ledger"""

    def __init__(self, webhook_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.webhook_url = webhook_url or settings.ledger_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    def backoff_seconds(self, failed_attempts: int) -> float:
        """base, 2 x base, 4 x base, ..."""
        return self.backoff_base * (2 ** (failed_attempts - 1))

    async def send_disbursement_event(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one event, retrying 5xx responses and network failures.

        Runs as a background task after the disbursement has committed, so a
        ledger outage never rolls back a loan. The last failure is re-raised.
        """
        async with httpx.AsyncClient(transport=self.transport, timeout=10.0) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                    return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    webhook_failure_counter.inc()
                    logger.warning(
                        f"Ledger webhook attempt {attempt}/{self.max_retries} failed: {e}",
                        extra={
                            "ledger_event": payload.get("event"),
                            "account_number": payload.get("account_number"),
                            "attempt": attempt,
                        },
                    )
                    if attempt == self.max_retries:
                        raise
                    await asyncio.sleep(self.backoff_seconds(attempt))
