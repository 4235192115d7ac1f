class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a document expected to exist is missing."""


class StoreError(DomainError):
    """Raised when the backing document store fails (network, validation, auth)."""


class ConcurrentUpdateError(StoreError):
    """Raised when a document changed between read and guarded update."""
