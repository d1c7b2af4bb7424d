"""
Error taxonomy and user-facing sanitization.

Service actions catch everything and return an ActionResult envelope; the
message placed in that envelope goes through ``sanitize_error`` so that
production responses never leak internal detail.
"""

import logging
from datetime import datetime

from jewelshot.config import settings

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated"
GENERIC_ERROR = "An error occurred. Please try again or contact support if the problem persists."
UNEXPECTED_ERROR = "An unexpected error occurred."
NETWORK_ERROR = "Network error. Please check your connection and try again."
AUTH_ERROR = "Authentication error. Please sign in again."
INSUFFICIENT_CREDITS = "Insufficient credits"


class JewelshotError(Exception):
    """Base class for expected, user-reportable failures."""


class ValidationError(JewelshotError):
    """User-correctable input problem; message is shown verbatim."""


class NotAuthenticatedError(JewelshotError):
    def __init__(self, message: str = NOT_AUTHENTICATED):
        super().__init__(message)


class InsufficientCreditsError(JewelshotError):
    def __init__(self, message: str = INSUFFICIENT_CREDITS):
        super().__init__(message)


class RateLimitError(JewelshotError):
    pass


class StorageLimitError(JewelshotError):
    """Account storage quota would be exceeded."""


class StorageError(JewelshotError):
    """Object store upload/delete failure."""


class InferenceError(JewelshotError):
    """AI inference service failure."""


# Phrases whose messages are already safe and actionable
_PASSTHROUGH_PHRASES = ("rate limit", "credit", "storage")


def sanitize_error(error: object) -> str:
    """Map an exception to the message shown to the user.

    Development builds (``DEBUG=true``) return the raw message. Production
    builds hide internals behind a small set of fixed messages, except for
    validation errors and the rate-limit / credit / storage phrases.
    """
    is_prod = not settings.debug

    if isinstance(error, Exception):
        message = str(error)
        if not is_prod:
            return message

        if isinstance(error, (ValidationError, NotAuthenticatedError)):
            return message

        lowered = message.lower()
        if "fetch" in lowered or "network" in lowered or "connect" in lowered:
            return NETWORK_ERROR
        if "unauthorized" in lowered or "auth" in lowered:
            return AUTH_ERROR
        if any(phrase in lowered for phrase in _PASSTHROUGH_PHRASES):
            return message

        return GENERIC_ERROR

    return UNEXPECTED_ERROR if is_prod else f"Unknown error: {error}"


def log_error(context: str, error: object) -> None:
    """Log an error with its stack (when it has one) under a context tag."""
    if isinstance(error, BaseException):
        logger.error(
            "[%s] %s",
            context,
            error,
            exc_info=(type(error), error, error.__traceback__),
            extra={"extra_data": {"timestamp": datetime.utcnow().isoformat()}},
        )
    else:
        logger.error("[%s] %r", context, error)
