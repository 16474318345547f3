class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when no authenticated caller is attached to the request."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced class or record does not exist."""


class ReconciliationError(DomainError):
    """Raised when a batch of writes could not be applied as a whole."""


class DeadlineExceeded(ReconciliationError):
    """Raised when the caller's deadline expires before a batch commits."""
