"""Domain-specific exceptions"""

from typing import List


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Evaluation or transition input is malformed or out of range"""

    def __init__(self, problems: List[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class IncompleteApplicationError(InvalidInputError):
    """Application is missing fields required for submission"""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = list(missing_fields)
        super().__init__([f"Missing required field: {name}" for name in self.missing_fields])


class ApprovalCeilingExceededError(DomainException):
    """Approved amount is above the configured ceiling over the requested amount"""

    pass


class InvalidTransitionError(DomainException):
    """Lifecycle event is not allowed from the current state"""

    def __init__(self, state, event, message: str | None = None):
        self.state = state
        self.event = event
        super().__init__(message or f"Cannot apply {event.value} to a loan in state {state.value}")


class NotApprovedError(InvalidTransitionError):
    """Disbursement attempted on an application that is not approved"""

    pass


class AlreadyDisbursedError(DomainException):
    """A loan account already exists for the application"""

    pass


class AmountExceedsApprovedError(DomainException):
    """Disbursement amount is larger than the approved amount"""

    pass


class ConcurrentModificationError(DomainException):
    """Stored state changed between read and write"""

    pass


class ProfileServiceError(DomainException):
    """Member profile service returned an error or is unavailable"""

    pass


class BorrowerNotFoundError(DomainException):
    """Member profile service has no record of the borrower"""

    pass
