"""Custom exception hierarchy."""

from typing import Any, Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(AppError):
    """Raised when a record fails structural validation.

    Always recoverable by the caller correcting its input; never retried.
    """
    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.reason = message


class NotFoundError(AppError):
    """Raised when a referenced record does not exist."""
    def __init__(self, kind: str, record_id: Any):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ConflictError(AppError):
    """Raised when an optimistic version check fails on write."""
    def __init__(
        self,
        kind: str,
        record_id: Any,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        super().__init__(
            f"{kind} {record_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.kind = kind
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class StorageError(AppError):
    """Raised when the storage backend fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass
