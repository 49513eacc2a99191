"""
Custom exception hierarchy for the outfit personalizer.

Provides a structured exception hierarchy for different error scenarios:
- AppException: Base for all application errors
- StoreError: Preference store read/write errors
- ValidationError: Rejected writes and malformed tokens

Each exception includes:
- Descriptive message
- Optional error code for programmatic handling
- Optional context dictionary for debugging

Read-path store errors are converted into result values by the store adapter
and never reach the recommendation caller. Write-path errors are surfaced.

Example:
    >>> from personalizer.utils.exceptions import PreferenceValidationError
    >>> raise PreferenceValidationError(
    ...     "Confidence out of range", field="overallConfidence", value=120
    ... )
"""

from __future__ import annotations

from typing import Any, Dict, Optional


# ============================================
# Base Exception
# ============================================


class AppException(Exception):
    """
    Base exception for all personalizer errors.

    All custom exceptions inherit from this class, allowing:
    - Catch-all handling of application errors
    - Consistent error structure across the package
    - Error code and context support

    Attributes:
        message: Human-readable error description.
        code: Optional error code for programmatic handling.
        context: Optional dictionary with debugging context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            code: Optional error code (e.g., "STORE_UNAVAILABLE").
            context: Optional dict with additional debugging info.
        """
        self.message = message
        self.code = code or self._default_code()
        self.context = context or {}
        super().__init__(self.message)

    def _default_code(self) -> str:
        """Generate default error code from class name."""
        # Convert CamelCase to UPPER_SNAKE_CASE
        name = self.__class__.__name__
        code = ""
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                code += "_"
            code += char.upper()
        return code

    def __str__(self) -> str:
        """String representation with code if available."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Store Errors
# ============================================


class StoreError(AppException):
    """
    Base exception for preference store errors.

    Raised by store implementations when:
    - The backing store cannot be reached
    - Access to a user document is denied
    - A write loses a contention race
    - An operation exceeds the request timeout
    """

    transient: bool = False

    def __init__(
        self,
        message: str = "Preference store error",
        collection: Optional[str] = None,
        user_id: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if collection:
            context["collection"] = collection
        if user_id:
            context["user_id"] = user_id
        super().__init__(message, context=context, **kwargs)


class StoreUnavailableError(StoreError):
    """Raised when the backing store cannot be reached."""

    def __init__(self, message: str = "Preference store unavailable", **kwargs) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE", **kwargs)


class StorePermissionError(StoreError):
    """Raised when the store denies access to a document."""

    def __init__(self, message: str = "Permission denied", **kwargs) -> None:
        super().__init__(message, code="STORE_PERMISSION_DENIED", **kwargs)


class StoreTimeoutError(StoreError):
    """Raised when a store operation exceeds the request timeout."""

    transient = True

    def __init__(
        self,
        message: str = "Store operation timed out",
        timeout: Optional[float] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if timeout is not None:
            context["timeout_seconds"] = timeout
        super().__init__(message, code="STORE_TIMEOUT", context=context, **kwargs)


class StoreContentionError(StoreError):
    """
    Raised when a write conflicts with a concurrent update.

    Contention is transient; the store adapter retries these writes with
    exponential backoff before giving up.
    """

    transient = True

    def __init__(self, message: str = "Concurrent write conflict", **kwargs) -> None:
        super().__init__(message, code="STORE_CONTENTION", **kwargs)


class StoreWriteError(StoreError):
    """
    Raised when a write cannot be persisted.

    Surfaced to the caller after retries are exhausted or when the
    underlying failure is not transient.

    Example:
        >>> raise StoreWriteError(
        ...     "Could not save preference update",
        ...     collection="preferences",
        ...     user_id="user-1",
        ...     attempts=4
        ... )
    """

    def __init__(
        self,
        message: str = "Failed to persist update",
        attempts: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if attempts is not None:
            context["attempts"] = attempts
        super().__init__(message, code="STORE_WRITE_FAILED", context=context, **kwargs)


# ============================================
# Validation Errors
# ============================================


class ValidationError(AppException):
    """
    Base exception for input validation errors.

    Raised when user input or a pending write fails validation.
    """

    pass


class PreferenceValidationError(ValidationError):
    """
    Raised when a document update violates its declared schema.

    The write is rejected before persistence; the caller decides whether
    to retry with sanitized input.
    """

    def __init__(
        self,
        message: str = "Invalid preference update",
        field: Optional[str] = None,
        value: Any = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]  # Limit value length
        super().__init__(message, code="PREFERENCE_VALIDATION", context=context, **kwargs)


class InvalidTokenError(ValidationError):
    """Raised when a color or style token is malformed."""

    def __init__(
        self,
        message: str = "Invalid token",
        token: Optional[str] = None,
        kind: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if token is not None:
            context["token"] = str(token)[:100]
        if kind:
            context["kind"] = kind
        super().__init__(message, code="INVALID_TOKEN", context=context, **kwargs)
