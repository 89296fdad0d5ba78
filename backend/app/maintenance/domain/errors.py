class DomainError(Exception):
    """Base domain error with a user-facing message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(DomainError):
    """Raised when input is missing or not valid for the current state."""


class NotFoundError(DomainError):
    """Raised when a referenced entity is missing."""


class StoreError(DomainError):
    """Raised when the underlying store call fails."""
