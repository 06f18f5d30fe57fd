"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Workspace not found", resource="workspace")
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class RateLimitError(AppException):
    """Raised when rate limit is exceeded.

    Example:
        raise RateLimitError(
            "Too many requests",
            details={"retry_after": 60}
        )
    """

    message = "Rate limit exceeded"
    error_code = "rate_limit_exceeded"
    status_code = 429


# ============================================================
# Identity verification
# ============================================================


class InvalidCodeError(AppException):
    """Raised when a verification code is wrong, expired, or missing."""

    message = "Invalid or expired verification code"
    error_code = "invalid_code"
    status_code = 400


class InvalidTokenError(AppException):
    """Raised when a provisioning token is wrong or expired."""

    message = "Invalid or expired verification token"
    error_code = "invalid_token"
    status_code = 401


class EmailDeliveryError(AppException):
    """Raised when the email collaborator fails to deliver a code.

    A code nobody receives is useless, so this aborts the send flow.
    """

    message = "Failed to send verification email"
    error_code = "email_delivery_failed"
    status_code = 502


# ============================================================
# Workspace provisioning
# ============================================================


class SlugTakenError(AppException):
    """Raised when a slug is malformed, reserved, or already in use.

    Example:
        raise SlugTakenError("This slug is reserved", details={"slug": "api"})
    """

    message = "This workspace URL is no longer available"
    error_code = "slug_taken"
    status_code = 409


class ProvisioningFailedError(AppException):
    """Raised when the database provider call fails for good."""

    message = "Failed to provision workspace database"
    error_code = "provisioning_failed"
    status_code = 502


class ProvisioningTimeoutError(AppException):
    """Raised when a provisioned database never becomes reachable."""

    message = "Workspace database did not become ready in time"
    error_code = "provisioning_timeout"
    status_code = 504


class MigrationFailedError(AppException):
    """Raised when the tenant schema cannot be applied."""

    message = "Failed to apply workspace schema"
    error_code = "migration_failed"
    status_code = 500


class SeedFailedError(AppException):
    """Raised when the initial tenant rows cannot be written."""

    message = "Failed to seed workspace data"
    error_code = "seed_failed"
    status_code = 500
