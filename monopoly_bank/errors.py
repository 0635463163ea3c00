"""
Ledger error taxonomy.

Validation errors and conflicts are final; transient errors may be retried
by the caller with backoff.
"""


class LedgerError(Exception):
    """Base class for all errors raised by ledger operations"""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        return type(self).__name__


class ValidationError(LedgerError):
    """Bad, missing or non-positive input, or an unknown team/property"""


class NotFoundError(ValidationError):
    """Referenced team or property does not exist"""


class ConflictError(LedgerError):
    """Operation conflicts with current state (owned property, duplicate team id)"""


class TransientError(LedgerError):
    """Timeout or connection failure; safe to retry"""

    retryable = True


ERROR_TYPES = {
    cls.__name__: cls
    for cls in (LedgerError, ValidationError, NotFoundError, ConflictError, TransientError)
}
