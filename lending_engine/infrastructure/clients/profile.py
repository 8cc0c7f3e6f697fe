"""Member profile service HTTP client for borrower and savings lookups"""

import httpx
from typing import Tuple
from lending_engine.domain.models import BorrowerProfile, SavingsProfile
from lending_engine.domain.exceptions import BorrowerNotFoundError, ProfileServiceError
from lending_engine.config import settings


class ProfileClient:
    """Client for the external member profile API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.profile_service_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_profile(self, borrower_id: str) -> Tuple[BorrowerProfile, SavingsProfile]:
        """
        Fetch the borrower's financial and savings snapshot.

        Raises:
            BorrowerNotFoundError: the service has no such member
            ProfileServiceError: on timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/members/{borrower_id}/profile")
                if response.status_code == 404:
                    raise BorrowerNotFoundError(f"Borrower {borrower_id} not found")
                response.raise_for_status()
                data = response.json()

                savings = data.get("savings") or {}
                return (
                    BorrowerProfile(
                        monthly_income_cents=int(data["monthly_income_cents"]),
                        credit_score=int(data["credit_score"]),
                        employment_status=data.get("employment_status") or "UNKNOWN",
                        existing_loan_count=int(data.get("existing_loan_count", 0)),
                        total_active_debt_cents=int(data.get("total_active_debt_cents", 0)),
                    ),
                    SavingsProfile(
                        balance_cents=int(savings.get("balance_cents", 0)),
                        total_interest_earned_cents=int(savings.get("total_interest_earned_cents", 0)),
                        account_age_months=int(savings.get("account_age_months", 0)),
                    ),
                )

            except httpx.TimeoutException as e:
                raise ProfileServiceError(f"Profile service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ProfileServiceError(f"Profile service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ProfileServiceError(f"Profile service unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise ProfileServiceError(f"Invalid profile data from member service: {e}") from e
