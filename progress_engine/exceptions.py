"""
Standardized exception hierarchy for progress-engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class ProgressEngineError(Exception):
    """
    Base exception for all progress-engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressEngineError(
            message="Failed to update progress",
            user_id="u1",
            operation="process_completion",
            context={"attempt": 2}
        )
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(
                self.log_level,
                f"{self.__class__.__name__}: {self.message}",
                extra=log_data,
                exc_info=self.cause
            )
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Caller Input)
# ==========================================

class ValidationError(ProgressEngineError):
    """
    Raised when caller input fails validation

    Examples:
    - Empty user ID
    - Malformed achievement catalog file

    Example:
        raise ValidationError(
            message="user_id must not be empty",
            field="user_id",
            value=""
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
            context={"field": field, "value": value, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(ProgressEngineError):
    """
    Base class for progress store errors
    """
    pass


class StoreUnavailableError(DatabaseError):
    """Progress store is unreachable"""

    def __init__(self, message: str = "Progress store unavailable", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble saving your progress. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Progress store statement failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your progress. Please try again.",
            context={"query": query, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


class ConflictError(DatabaseError):
    """
    A concurrent transaction touched the same user's progress records.

    Retryable: the whole read-compute-write cycle must be re-run
    against fresh state.
    """

    log_level = logging.WARNING

    def __init__(self, message: str = "Concurrent progress update detected", **kwargs):
        super().__init__(
            message=message,
            user_message="Your progress was being updated elsewhere. Please try again.",
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """Requested progress record does not exist"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Achievement Rule Errors
# ==========================================

class UnknownCriteriaTypeError(ProgressEngineError):
    """Achievement definition uses a criteria type the evaluator can't measure"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        achievement_id: Optional[str] = None,
        criteria_type: Optional[str] = None,
        **kwargs
    ):
        self.achievement_id = achievement_id
        self.criteria_type = criteria_type
        super().__init__(
            message=message,
            context={"achievement_id": achievement_id, "criteria_type": criteria_type, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(ProgressEngineError):
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
            context={"config_key": config_key, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressEngineError:
    """
    Wrap driver exceptions (psycopg, psycopg_pool) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate ProgressEngineError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="process_completion",
                user_id="u1",
            )
    """
    # Import here to avoid circular dependencies
    import psycopg
    from psycopg import errors as pg_errors
    from psycopg_pool import PoolTimeout

    if isinstance(error, ProgressEngineError):
        return error

    # Serialization failures and deadlocks mean another writer won the race
    if isinstance(error, (pg_errors.SerializationFailure, pg_errors.DeadlockDetected)):
        return ConflictError(
            message=f"Concurrent transaction conflict: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, (psycopg.OperationalError, PoolTimeout)):
        return StoreUnavailableError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    return ProgressEngineError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
