"""Error handling module with RFC 7807 Problem Details."""

from hatchery.core.errors.exceptions import (
    AppException,
    EmailDeliveryError,
    InvalidCodeError,
    InvalidTokenError,
    MigrationFailedError,
    NotFoundError,
    ProvisioningFailedError,
    ProvisioningTimeoutError,
    RateLimitError,
    SeedFailedError,
    SlugTakenError,
)
from hatchery.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    "EmailDeliveryError",
    # Handlers
    "FieldError",
    "InvalidCodeError",
    "InvalidTokenError",
    "MigrationFailedError",
    "NotFoundError",
    "ProblemDetail",
    "ProvisioningFailedError",
    "ProvisioningTimeoutError",
    "RateLimitError",
    "SeedFailedError",
    "SlugTakenError",
    "register_exception_handlers",
]
