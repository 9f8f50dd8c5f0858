"""Custom exceptions for the dealflow application."""


class DealflowException(Exception):
    """Base exception for dealflow application."""

    code = "error"


class ValidationError(DealflowException):
    """Raised when input validation fails."""

    code = "validation_error"


class NotFoundError(DealflowException):
    """Raised when a resource is missing or not owned by the caller."""

    code = "not_found"


class ConflictError(DealflowException):
    """Raised when an operation is blocked by dependent records."""

    code = "conflict"

    def __init__(self, message: str, count: int = 0) -> None:
        super().__init__(message)
        self.count = count


class PersistenceError(DealflowException):
    """Raised when a database operation fails."""

    code = "persistence_error"


class ConfigurationError(DealflowException):
    """Raised when configuration is invalid."""

    code = "configuration_error"


class AuthenticationError(DealflowException):
    """Raised when authentication fails."""

    code = "authentication_error"
