"""
Standardized exception hierarchy for learner-progression
Provides rich context, consistent logging, and user-friendly error messages

Domain outcomes (unknown quest, power-up on cooldown, unrecognized activity)
are result values, not exceptions. Only boundary validation, configuration
and storage failures are raised.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import json
import logging

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all learner-progression errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressionError(
            message="Failed to save streak",
            learner_id="learner-1",
            operation="record_day",
            context={"date": "2024-01-15"}
        )
    """

    def __init__(
        self,
        message: str,
        learner_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.learner_id = learner_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "learner_id": self.learner_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for presentation-layer responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Boundary Input)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when caller input is rejected at the boundary

    Examples:
    - Negative experience amount
    - Malformed activity payload

    Example:
        raise ValidationError(
            message="Experience must not be negative",
            field="total_experience",
            value=-5,
            learner_id="learner-1"
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class StorageError(ProgressionError):
    """
    Base class for persistence failures

    The in-memory mutation has already happened when one of these is raised;
    the caller must retry the write or report the state as not saved.
    """

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        self.key = key
        kwargs.setdefault("user_message", "Your progress could not be saved. Please try again.")
        context = kwargs.pop("context", None) or {}
        context.setdefault("key", key)
        super().__init__(message=message, context=context, **kwargs)


class StoreConnectionError(StorageError):
    """Progress store is unreachable"""

    def __init__(self, message: str = "Progress store connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble reaching your saved progress. Please try again in a moment.",
            **kwargs
        )


class StoreReadError(StorageError):
    """Reading a record from the progress store failed"""
    pass


class StoreWriteError(StorageError):
    """Writing a record to the progress store failed"""
    pass


class CorruptRecordError(StorageError):
    """A stored record could not be decoded into its model"""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            key=key,
            user_message="Some of your saved progress could not be read.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(ProgressionError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_store_exception(
    error: Exception,
    operation: str,
    key: Optional[str] = None,
    learner_id: Optional[str] = None,
) -> StorageError:
    """
    Convert a backend exception into a StorageError

    Args:
        error: Original exception raised by the store backend
        operation: "get" or "put"
        key: Store key being accessed
        learner_id: Learner the record belongs to (optional)

    Returns:
        StorageError subclass wrapping the original exception

    Example:
        try:
            await client.set(key, payload)
        except Exception as e:
            raise wrap_store_exception(e, operation="put", key=key)
    """
    from redis import exceptions as redis_exceptions

    if isinstance(error, StorageError):
        return error

    if isinstance(error, (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError, ConnectionRefusedError)):
        return StoreConnectionError(
            message=f"Progress store unreachable during {operation}: {error}",
            key=key,
            learner_id=learner_id,
            operation=operation,
            cause=error
        )

    if isinstance(error, (json.JSONDecodeError, UnicodeDecodeError)):
        return CorruptRecordError(
            message=f"Stored record is not valid JSON: {error}",
            key=key,
            learner_id=learner_id,
            operation=operation,
            cause=error
        )

    error_class = StoreWriteError if operation == "put" else StoreReadError
    return error_class(
        message=f"Progress store {operation} failed: {error}",
        key=key,
        learner_id=learner_id,
        operation=operation,
        cause=error
    )
