"""Map domain exceptions to HTTP error responses"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lending_engine.api.dependencies import get_request_id
from lending_engine.domain.exceptions import (
    AlreadyDisbursedError,
    AmountExceedsApprovedError,
    ApprovalCeilingExceededError,
    BorrowerNotFoundError,
    ConcurrentModificationError,
    DomainException,
    IncompleteApplicationError,
    InvalidInputError,
    InvalidTransitionError,
    NotApprovedError,
    ProfileServiceError,
)

# Checked in order; first match wins
ERROR_STATUS = (
    (IncompleteApplicationError, 422, "incomplete_application"),
    (InvalidInputError, 422, "invalid_input"),
    (ApprovalCeilingExceededError, 422, "approval_ceiling_exceeded"),
    (AmountExceedsApprovedError, 422, "amount_exceeds_approved"),
    (AlreadyDisbursedError, 409, "already_disbursed"),
    (NotApprovedError, 409, "not_approved"),
    (InvalidTransitionError, 409, "invalid_transition"),
    (ConcurrentModificationError, 409, "concurrent_modification"),
    (BorrowerNotFoundError, 404, "borrower_not_found"),
    (ProfileServiceError, 503, "profile_service_unavailable"),
)


def error_code(exc: DomainException) -> tuple[int, str]:
    for exc_type, status, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status, code
    return 400, "domain_error"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        status, code = error_code(exc)
        request_id = get_request_id(request)
        log = logging.error if status >= 500 else logging.warning
        log(
            f"Request failed: {exc}",
            extra={"request_id": request_id, "path": request.url.path, "error_code": code},
        )

        body = {"detail": str(exc), "code": code}
        problems = getattr(exc, "problems", None)
        if problems:
            body["problems"] = problems
        return JSONResponse(status_code=status, content=body)
