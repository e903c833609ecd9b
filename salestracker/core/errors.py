"""Exception types for Sales Tracker."""

from __future__ import annotations


class SalesTrackerError(Exception):
    """Base class for all Sales Tracker errors."""


class OwnerRequiredError(SalesTrackerError):
    """Raised when an operation is attempted without an owner identity."""

    def __init__(self, message: str = "An owner identity is required") -> None:
        super().__init__(message)


class InvalidMonthError(SalesTrackerError, ValueError):
    """Raised when a month value is not in YYYY-MM form."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid month: {value!r} (expected YYYY-MM)")
        self.value = value


class CatalogValidationError(SalesTrackerError, ValueError):
    """Raised when an item or platform violates a catalog invariant."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class NotFoundError(SalesTrackerError, LookupError):
    """Raised when a document does not exist for the given owner."""


class StorageError(SalesTrackerError):
    """Raised when the storage layer fails to complete a read or write."""


class LedgerWriteError(StorageError):
    """Raised when a batch of sale entries could not be written."""

    def __init__(self, message: str, attempted: int = 0) -> None:
        super().__init__(message)
        self.attempted = attempted
