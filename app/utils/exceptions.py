"""
Exception hierarchy for the Resume Matcher API.

Each exception carries a machine-readable `error_code`, a `details` dict and
the HTTP status it maps to; `app.middleware.error_handlers` turns them into
JSON error responses.
"""
import asyncio
import functools
import inspect
import time
from random import uniform
from typing import Any, Dict

from fastapi import HTTPException


class MatcherBaseException(Exception):
    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None,
                 cause: Exception = None):
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = dict(details or {})
        self.cause = cause
        super().__init__(message)

    def _add_details(self, **fields) -> None:
        self.details.update({k: v for k, v in fields.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(MatcherBaseException):
    """Missing or invalid request input"""
    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(field=field, invalid_value=None if value is None else str(value))


class NotFoundError(MatcherBaseException):
    """A referenced job, resume or match set does not exist"""
    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(resource=resource, resource_id=resource_id)


class ComputationError(MatcherBaseException):
    """The embedding backend is unavailable or returned malformed output"""
    error_code = "COMPUTATION_ERROR"

    def __init__(self, message: str, backend: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(backend=backend)


class DimensionMismatchError(ComputationError):
    """An embedding does not have the configured dimension"""
    error_code = "DIMENSION_MISMATCH"

    def __init__(self, message: str, expected: int = None, actual: int = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(expected_dimension=expected, actual_dimension=actual)


class DatabaseError(MatcherBaseException):
    error_code = "DATABASE_ERROR"

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(operation=operation, collection=collection)


class ConfigurationError(MatcherBaseException):
    error_code = "CONFIGURATION_ERROR"
    status_code = 400

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_details(config_key=config_key,
                          config_value=None if config_value is None else str(config_value))


class ExternalServiceError(ComputationError):
    """An upstream service such as the embedding server answered with an error status"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502

    def __init__(self, message: str, service_name: str = None, upstream_status: int = None, **kwargs):
        kwargs.setdefault("backend", service_name)
        super().__init__(message, **kwargs)
        self._add_details(service_name=service_name, upstream_status=upstream_status)


def map_to_http_exception(exc: MatcherBaseException) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail={"error": exc.to_dict(), "message": exc.message})


class ExceptionContext:
    """
    Wraps a multi-step operation so that whatever escapes it is one of ours.

    Our own exceptions pass through untouched. KeyError, ValueError and
    TypeError become ValidationError; errors mentioning mongo or the database
    become DatabaseError; anything else becomes ComputationError. The keyword
    arguments given at construction end up in the error's details.
    """

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False
        if self.logger:
            self.logger.error(f"{self.operation} failed: {exc_val}",
                              extra={**self.context, "exception_type": exc_type.__name__})
        if isinstance(exc_val, MatcherBaseException) or not isinstance(exc_val, Exception):
            return False

        text = str(exc_val).lower()
        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(f"Invalid input in {self.operation}: {exc_val}",
                                  details=dict(self.context), cause=exc_val) from exc_val
        if "mongo" in text or "database" in text:
            raise DatabaseError(f"Database error in {self.operation}: {exc_val}", operation=self.operation,
                                details=dict(self.context), cause=exc_val) from exc_val
        raise ComputationError(f"Processing error in {self.operation}: {exc_val}",
                               details=dict(self.context), cause=exc_val) from exc_val


def retry_with_logging(max_attempts: int = 3, backoff_factor: float = 1.0,
                       exceptions: tuple = (Exception,), logger=None):
    """
    Retry a sync or async callable on `exceptions` with jittered exponential
    backoff; the last failure is re-raised.
    """

    def decorator(func):
        def on_failure(attempt: int, error: Exception) -> float:
            if logger:
                logger.warning(f"{func.__name__} attempt {attempt + 1}/{max_attempts} failed: {error}")
                if attempt == max_attempts - 1:
                    logger.error(f"{func.__name__} gave up after {max_attempts} attempts")
            return backoff_factor * (2 ** attempt) + uniform(0, 1)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    delay = on_failure(attempt, e)
                    if attempt == max_attempts - 1:
                        raise
                    await asyncio.sleep(delay)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    delay = on_failure(attempt, e)
                    if attempt == max_attempts - 1:
                        raise
                    time.sleep(delay)

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

    return decorator
