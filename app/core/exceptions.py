"""Custom exceptions for Reelay application.

This module defines all custom exceptions used throughout the application.
All exceptions inherit from ReelayError for easy catching.

Exception classes include context dictionaries for structured logging
and debugging. Use the `context` property to access additional details.
Errors that originate from an upstream service also carry `details`, the
upstream error payload surfaced to API callers.
"""

from typing import Any


class ReelayError(Exception):
    """Base exception for all Reelay errors.

    All custom exceptions in the application should inherit from this class.
    Provides a context dictionary for structured error information.

    Attributes:
        message: Human-readable error message
        context: Dictionary with additional error context
        details: Upstream error payload, if any

    Example:
        >>> try:
        ...     raise ReelayError("Something went wrong", context={"user_id": "123"})
        ... except ReelayError as e:
        ...     print(f"Error: {e}, Context: {e.context}")
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        details: Any = None,
    ) -> None:
        """Initialize ReelayError.

        Args:
            message: Error message
            context: Optional dictionary with additional context
            details: Optional upstream error payload
        """
        self.message = message
        self.context = context or {}
        self.details = details
        super().__init__(message)

    def with_context(self, **kwargs: Any) -> "ReelayError":
        """Add additional context to the exception.

        Args:
            **kwargs: Key-value pairs to add to context

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.

        Returns:
            Dictionary with error type, message, and context
        """
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "context": self.context,
        }


# ============================================
# Database Errors
# ============================================


class DatabaseError(ReelayError):
    """Base exception for database-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize DatabaseError.

        Args:
            message: Error message
            context: Additional context
            operation: Database operation that failed (e.g., "get", "upsert")
        """
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(message, context=ctx)


class RecordNotFoundError(DatabaseError):
    """Raised when a database record is not found.

    Attributes:
        model: The model class that was queried
        record_id: The ID that was not found
    """

    def __init__(
        self,
        model: str,
        record_id: str,
        context: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize RecordNotFoundError.

        Args:
            model: Name of the model class
            record_id: ID that was not found
            context: Additional context
            message: Override for the default message
        """
        ctx = context or {}
        ctx.update({"model": model, "record_id": record_id})
        super().__init__(message or f"{model} with id={record_id} not found", context=ctx)
        self.model = model
        self.record_id = record_id


class CredentialNotFoundError(RecordNotFoundError):
    """Raised when no credential record exists for a subject id."""

    def __init__(self, subject_id: str, context: dict[str, Any] | None = None) -> None:
        """Initialize CredentialNotFoundError.

        Args:
            subject_id: Subject id that has no stored credential
            context: Additional context
        """
        super().__init__(
            model="UserCredential",
            record_id=subject_id,
            context=context,
            message="User not found",
        )
        self.subject_id = subject_id


# ============================================
# Configuration Errors
# ============================================


class ConfigError(ReelayError):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Error message
            config_path: Path to the config file/key
            context: Additional context
        """
        ctx = context or {}
        if config_path:
            ctx["config_path"] = config_path
        super().__init__(message, context=ctx)


class ConfigNotFoundError(ConfigError):
    """Raised when a required configuration is not found.

    Attributes:
        config_key: The configuration key that was not found
    """

    def __init__(
        self,
        config_key: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigNotFoundError.

        Args:
            config_key: Configuration key that was not found
            config_path: Path to config file
            context: Additional context
        """
        ctx = context or {}
        ctx["config_key"] = config_key
        super().__init__(
            f"Configuration '{config_key}' not found",
            config_path=config_path,
            context=ctx,
        )
        self.config_key = config_key


# ============================================
# Request Errors
# ============================================


class InvalidPublishRequestError(ReelayError):
    """Raised when a publish request is missing a required field.

    Attributes:
        field: Name of the missing or invalid field
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        self.field = field
        super().__init__(message, context=ctx)


# ============================================
# Transfer Errors
# ============================================


class TransferError(ReelayError):
    """Base exception for source fetch failures."""

    def __init__(
        self,
        message: str,
        source_url: str | None = None,
        context: dict[str, Any] | None = None,
        details: Any = None,
    ) -> None:
        """Initialize TransferError.

        Args:
            message: Error message
            source_url: URL of the remote source
            context: Additional context
            details: Upstream error payload
        """
        ctx = context or {}
        if source_url:
            ctx["source_url"] = source_url
        self.source_url = source_url
        super().__init__(message, context=ctx, details=details)


class LengthUnknownError(TransferError):
    """Raised when a source does not declare a parseable Content-Length."""

    def __init__(
        self,
        source_url: str,
        message: str = "Content-Length header missing from video source",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, source_url=source_url, context=context)


class FetchError(TransferError):
    """Raised on transport failure or non-success status from a source.

    Attributes:
        status_code: HTTP status returned by the source, if any
    """

    def __init__(
        self,
        message: str,
        source_url: str | None = None,
        status_code: int | None = None,
        details: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize FetchError.

        Args:
            message: Error message
            source_url: URL of the remote source
            status_code: HTTP status code (optional)
            details: Upstream response payload (optional)
            context: Additional context
        """
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, source_url=source_url, context=ctx, details=details)


# ============================================
# Storage Errors
# ============================================


class StorageError(ReelayError):
    """Base exception for object storage errors.

    Attributes:
        object_key: Key of the staged object involved
    """

    def __init__(
        self,
        message: str,
        object_key: str | None = None,
        bucket: str | None = None,
        context: dict[str, Any] | None = None,
        details: Any = None,
    ) -> None:
        ctx = context or {}
        if object_key:
            ctx["object_key"] = object_key
        if bucket:
            ctx["bucket"] = bucket
        self.object_key = object_key
        super().__init__(message, context=ctx, details=details)


class StorageWriteError(StorageError):
    """Raised when staging a stream into object storage fails.

    The object state is unknown after this error; callers must attempt to
    delete `object_key`.
    """


class StorageReadError(StorageError):
    """Raised when a staged object cannot be materialized locally."""


# ============================================
# Upload Errors
# ============================================


class UploadError(ReelayError):
    """Base exception for upload-related errors."""

    def __init__(
        self,
        message: str,
        platform: str = "youtube",
        context: dict[str, Any] | None = None,
        details: Any = None,
    ) -> None:
        """Initialize UploadError.

        Args:
            message: Error message
            platform: Upload platform
            context: Additional context
            details: Upstream error payload
        """
        ctx = context or {}
        ctx["platform"] = platform
        super().__init__(message, context=ctx, details=details)


class PublishError(UploadError):
    """Raised when the platform rejects a publish call.

    Attributes:
        status_code: HTTP status returned by the platform
        error_reason: First error reason reported by the platform
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_reason: str | None = None,
        details: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize PublishError.

        Args:
            message: Error message
            status_code: HTTP status code
            error_reason: Error reason from API
            details: Upstream error payload
            context: Additional context
        """
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        if error_reason:
            ctx["error_reason"] = error_reason

        self.status_code = status_code
        self.error_reason = error_reason

        super().__init__(message, platform="youtube", context=ctx, details=details)


class QuotaExceededError(PublishError):
    """Raised when the YouTube API quota is exceeded."""

    def __init__(
        self,
        message: str = "YouTube API quota exceeded",
        status_code: int | None = 403,
        error_reason: str | None = "quotaExceeded",
        details: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            error_reason=error_reason,
            details=details,
            context=context,
        )


# ============================================
# Authentication Errors
# ============================================


class AuthError(ReelayError):
    """Base exception for authentication errors."""

    def __init__(
        self,
        message: str,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
        details: Any = None,
    ) -> None:
        """Initialize AuthError.

        Args:
            message: Error message
            user_id: User ID if available
            context: Additional context
            details: Upstream error payload
        """
        ctx = context or {}
        if user_id:
            ctx["user_id"] = user_id
        super().__init__(message, context=ctx, details=details)


class UnauthenticatedError(AuthError):
    """Raised when a request carries no subject id."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Raised when an OAuth exchange or id-token verification fails.

    Attributes:
        credential_type: Type of credential (oauth, id_token, etc.)
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        credential_type: str | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize InvalidCredentialsError.

        Args:
            message: Error message
            credential_type: Type of credential
            user_id: User ID
            context: Additional context
        """
        ctx = context or {}
        if credential_type:
            ctx["credential_type"] = credential_type

        self.credential_type = credential_type

        super().__init__(message, user_id=user_id, context=ctx)


class AuthExpiredError(AuthError):
    """Raised when the refresh token is invalid or revoked.

    Terminal for a run: the user must repeat the consent flow.

    Attributes:
        token_type: Type of token that failed (refresh, access)
    """

    def __init__(
        self,
        message: str = "Authorization expired; re-authorize via /auth/login",
        token_type: str | None = "refresh",
        user_id: str | None = None,
        details: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if token_type:
            ctx["token_type"] = token_type

        self.token_type = token_type

        super().__init__(message, user_id=user_id, context=ctx, details=details)


# ============================================
# Pipeline Errors
# ============================================


class RunTimeoutError(ReelayError):
    """Raised when a pipeline run exceeds its bounded timeout.

    Attributes:
        timeout_seconds: Configured timeout
        state: Run state when the timeout fired
    """

    def __init__(
        self,
        timeout_seconds: float,
        state: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["timeout_seconds"] = timeout_seconds
        if state:
            ctx["state"] = state
        self.timeout_seconds = timeout_seconds
        self.state = state
        super().__init__(f"Publish run timed out after {timeout_seconds}s", context=ctx)
