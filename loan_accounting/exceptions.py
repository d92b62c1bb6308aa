"""Exception hierarchy for the loan accounting engine."""

from typing import Optional


class LoanAccountingError(Exception):
    """Base exception for all loan accounting errors."""


class ConfigurationError(LoanAccountingError):
    """Raised when loan or installment financial fields are malformed."""


class AuthorizationError(LoanAccountingError):
    """Raised when a batch trigger is missing or presents a bad credential."""


class FatalRunError(LoanAccountingError):
    """Raised when a batch run fails outside the per-customer loop."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StorageError(LoanAccountingError):
    """Raised when a storage operation fails."""


class DuplicateRecordError(StorageError):
    """Raised when an insert collides with an existing record id."""

    def __init__(self, table: str, record_id: str):
        super().__init__(f"Record {record_id} already exists in {table}")
        self.table = table
        self.record_id = record_id
