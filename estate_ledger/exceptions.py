"""Exception hierarchy for ledger operations.

Every error is terminal for the call that raised it: the unit of work rolls
the transaction back and the caller decides whether to resubmit.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(LedgerError):
    """Raised for malformed or out-of-range input, or expired/inactive records."""


class NotFoundError(ValidationError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class AuthorizationError(LedgerError):
    """Raised when the caller lacks the required role or ownership."""

    status_code = 403


class InsufficientResourceError(LedgerError):
    """Raised when a balance, allowance, share supply or fund is too small."""

    status_code = 409


class ConsistencyError(LedgerError):
    """Raised when state drifted between creation of a record and its use."""

    status_code = 409
