"""Custom domain exceptions for the application."""

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
READ_ONLY_RESOURCE = "READ_ONLY_RESOURCE"
VALIDATION_ERROR = "VALIDATION_ERROR"
INFRASTRUCTURE_ERROR = "INFRASTRUCTURE_ERROR"


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource (product or charge definition) does not exist."""

    pass


class ConflictError(DomainError):
    """Raised when a request conflicts with the current state of a resource."""

    pass


class DuplicateResourceError(ConflictError):
    """Raised when attempting to create a resource that would violate a uniqueness constraint."""

    pass


class ReadOnlyResourceError(ConflictError):
    """Raised when attempting to change or delete a read-only resource."""

    pass


class DomainValidationError(DomainError):
    """Raised when business rules reject a structurally valid request (e.g. read-only on create)."""

    pass


class CommandSubmissionError(Exception):
    """Raised when a command could not be accepted for execution.

    Not a DomainError: the request itself was valid, the infrastructure failed.
    """

    pass
