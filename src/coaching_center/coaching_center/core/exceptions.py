class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a batch, student, test or attendance record does not exist for the tenant."""


class AuthorizationError(DomainError):
    """Raised when a request carries no (or an invalid) tenant scope."""


class DuplicateKeyError(DomainError):
    """Raised by repositories when an insert hits a unique key."""
