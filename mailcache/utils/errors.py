"""Error taxonomy and centralized error handling for mailcache."""

from enum import Enum
from typing import Any, Dict, Optional

from mailcache.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    DATABASE = "database"
    NETWORK = "network"
    CACHE = "cache"
    VALIDATION = "validation"
    SYNC = "sync"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class MailCacheError(Exception):
    """Base exception for all mailcache errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise MailCacheError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Storage Errors


class StorageError(MailCacheError):
    """Base exception for local store failures."""

    category = ErrorCategory.DATABASE
    user_message = "A local storage error occurred"


class StorageConnectionError(StorageError):
    """Exception for database engine/connection failures."""

    user_message = "Failed to open the local database"


class PartialWriteError(StorageError):
    """A multi-row transaction aborted and was fully rolled back."""

    user_message = "A local write was aborted and rolled back"


class TransactionTimeoutError(StorageError):
    """A transaction ran past its configured timeout and was rolled back."""

    user_message = "A local write took too long and was rolled back"


## Network Errors


class ConnectivityError(MailCacheError):
    """A call to the remote service failed."""

    category = ErrorCategory.NETWORK
    user_message = "Could not reach the mail server"


class RemoteNotFoundError(ConnectivityError):
    """The remote service reported that the target item does not exist."""

    user_message = "The message no longer exists on the server"


## Cache Errors


class NotFoundOffline(MailCacheError):
    """Cache miss while in offline mode."""

    category = ErrorCategory.CACHE
    user_message = "Not available offline"


## Validation Errors


class ValidationError(MailCacheError):
    """Invalid input rejected before submission."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


## Sync Errors


class ReplayHaltError(MailCacheError):
    """A queued action failed during replay; later actions stay queued."""

    category = ErrorCategory.SYNC
    user_message = "Sync stopped at a failing action"

    def __init__(
        self,
        message: str | None = None,
        details: Dict[str, Any] | None = None,
        action: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, details)
        self.action = action
        self.cause = cause


## Configuration Errors


class ConfigurationError(MailCacheError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Handle errors with logging and user-friendly message."""
        if isinstance(error, MailCacheError):
            _get_logger().error(f"{context}: {error.message}", extra={"context": error.details})
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }


def format_error_message(error: BaseException) -> str:
    """Format an error message for display."""
    if isinstance(error, MailCacheError):
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
