"""
Custom Exception Classes for the ZigZig matching service
"""
import asyncio
import functools
import inspect
import time
from random import uniform
from typing import Dict, Any

from fastapi import HTTPException
from pymongo.errors import PyMongoError


class ZigZigBaseException(Exception):
    """Base exception for the matching service"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(ZigZigBaseException):
    """Raised when request data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class DatabaseError(ZigZigBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(ZigZigBaseException):
    """Raised when an LLM returns something unusable"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ExtractionError(ZigZigBaseException):
    """Raised when no configured model could extract job requirements"""

    def __init__(self, message: str = "Failed to extract job requirements", models: list = None, **kwargs):
        details = kwargs.pop('details', {})
        if models:
            details['models_tried'] = list(models)
        super().__init__(message, error_code="EXTRACTION_ERROR", details=details, **kwargs)


class ProcessingError(ZigZigBaseException):
    """Raised when a matching run or portfolio processing fails"""

    def __init__(self, message: str, operation: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        super().__init__(message, error_code="PROCESSING_ERROR", details=details, **kwargs)


class NotFoundError(ZigZigBaseException):
    """Raised when a requested resource does not exist"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        kwargs.setdefault("error_code", "NOT_FOUND")
        super().__init__(message, details=details, **kwargs)


class JobNotFoundError(NotFoundError):
    """Raised when a job posting is missing or not owned by the caller"""

    def __init__(self, job_id: str, message: str = "Job not found", **kwargs):
        super().__init__(message, resource="job_postings", resource_id=job_id, error_code="JOB_NOT_FOUND", **kwargs)
        self.job_id = job_id


class ConfigurationError(ZigZigBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class AuthenticationError(ZigZigBaseException):
    """Raised when the caller identity is missing"""

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)



class RateLimitError(ZigZigBaseException):
    """Raised when an upstream API rate-limits us"""

    def __init__(self, message: str, limit: int = None, retry_after: float = None, **kwargs):
        details = kwargs.pop('details', {})
        if limit:
            details['limit'] = limit
        if retry_after is not None:
            details['retry_after'] = retry_after
        super().__init__(message, error_code="RATE_LIMIT_ERROR", details=details, **kwargs)


class ExternalServiceError(ZigZigBaseException):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


STATUS_CODE_MAPPING = {
    ValidationError: 400,
    ConfigurationError: 400,
    AuthenticationError: 401,
    NotFoundError: 404,
    JobNotFoundError: 404,
    RateLimitError: 429,
    DatabaseError: 500,
    ModelError: 500,
    ExtractionError: 500,
    ProcessingError: 500,
    ExternalServiceError: 502,
}


def status_code_for(exc: ZigZigBaseException) -> int:
    """HTTP status for a service exception, walking the class hierarchy"""
    for klass in type(exc).__mro__:
        if klass in STATUS_CODE_MAPPING:
            return STATUS_CODE_MAPPING[klass]
    return 500


def map_to_http_exception(exc: ZigZigBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error": exc.message,
        "error_code": exc.error_code,
        "details": exc.details,
    }
    return HTTPException(status_code=status_code_for(exc), detail=detail)


class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Custom exceptions and cancellation pass through untouched
        if isinstance(exc_val, (ZigZigBaseException, asyncio.CancelledError)):
            return False

        if isinstance(exc_val, PyMongoError):
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(
                f"Validation error in {self.operation}: {str(exc_val)}",
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        raise ProcessingError(
            f"Processing error in {self.operation}: {str(exc_val)}",
            operation=self.operation,
            details=dict(self.context),
            cause=exc_val
        ) from exc_val


# upper bound on a server-requested Retry-After wait
MAX_RETRY_AFTER = 60.0


def _retry_delay(error: Exception, attempt: int, backoff_factor: float, jitter: float) -> float:
    """Exponential backoff, stretched to at least the Retry-After the server asked for"""
    delay = backoff_factor * (2 ** attempt) + uniform(0, jitter)
    details = getattr(error, "details", None)
    retry_after = details.get("retry_after") if isinstance(details, dict) else None
    if retry_after is not None:
        delay = max(delay, min(float(retry_after), MAX_RETRY_AFTER))
    return delay


def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None,
    jitter: float = 1.0
):
    """Decorator to retry operations with exponential backoff and logging"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    await asyncio.sleep(_retry_delay(e, attempt, backoff_factor, jitter))

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    time.sleep(_retry_delay(e, attempt, backoff_factor, jitter))

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
