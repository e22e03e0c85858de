"""
Custom exceptions for the image studio with structured error context.
Type-safe error handling with clear semantics; routers map these to HTTP responses.
"""
import uuid
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum

from fastapi import HTTPException


class ErrorCategory(Enum):
    """Error categorization for better handling and monitoring."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    SYSTEM = "system"
    BUSINESS_LOGIC = "business_logic"


class StudioError(Exception):
    """Base exception for all studio-specific errors with enhanced context."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        user_message: Optional[str] = None,
        correlation_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc)
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self._generate_error_code()
        self.category = category
        self.user_message = user_message or message
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.context = context or {}

    def _generate_error_code(self) -> str:
        """Generate a unique error code for tracking."""
        class_name = self.__class__.__name__
        return f"{class_name.upper()}_{int(self.timestamp.timestamp() * 1000)}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "category": self.category.value,
            "details": self.details,
            "correlation_id": self.correlation_id,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }


class AuthenticationError(StudioError):
    """Base class for authentication-related errors."""

    http_status = 401

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.AUTHENTICATION)
        kwargs.setdefault('user_message', 'Authentication failed. Please log in again.')
        super().__init__(message, **kwargs)


class AuthorizationError(StudioError):
    """Raised when access to a resource is forbidden."""

    http_status = 403

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        user_id: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.AUTHORIZATION)
        kwargs.setdefault('user_message', "Access denied. You don't have permission to perform this action.")
        super().__init__(message, **kwargs)

        self.resource_id = resource_id
        self.resource_type = resource_type
        self.user_id = user_id

        self.context.update({
            'resource_id': resource_id,
            'resource_type': resource_type,
            'user_id': user_id
        })


class NotFoundError(StudioError):
    """Raised when a requested resource is not found."""

    http_status = 404

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault('user_message', 'The requested resource was not found.')
        super().__init__(message, **kwargs)

        self.resource_id = resource_id
        self.resource_type = resource_type

        self.context.update({
            'resource_id': resource_id,
            'resource_type': resource_type
        })


class ConflictError(StudioError):
    """Raised when an action conflicts with the current state of a resource."""

    http_status = 409

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.BUSINESS_LOGIC)
        kwargs.setdefault('user_message', message)
        super().__init__(message, **kwargs)


class ValidationError(StudioError):
    """Raised when input validation fails."""

    http_status = 400

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.VALIDATION)
        kwargs.setdefault('user_message', message)
        super().__init__(message, **kwargs)

        self.field_errors = field_errors or {}
        self.context.update({'field_errors': self.field_errors})


class DatabaseError(StudioError):
    """Raised when database operations fail."""

    http_status = 503

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.DATABASE)
        kwargs.setdefault('user_message', 'A database error occurred. Please try again later.')
        super().__init__(message, **kwargs)

        self.operation = operation
        self.table = table

        self.context.update({
            'operation': operation,
            'table': table
        })


class ExternalServiceError(StudioError):
    """Raised when external service calls fail."""

    http_status = 502

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.EXTERNAL_SERVICE)
        kwargs.setdefault('user_message', 'An external service is currently unavailable. Please try again later.')
        super().__init__(message, **kwargs)

        self.service_name = service_name
        self.status_code = status_code

        self.context.update({
            'service_name': service_name,
            'status_code': status_code
        })


class ConfigurationError(StudioError):
    """Raised when a required setting (API key, secret) is missing."""

    http_status = 500

    def __init__(self, message: str, setting_name: Optional[str] = None, **kwargs):
        kwargs.setdefault('user_message', message)
        super().__init__(message, **kwargs)
        self.setting_name = setting_name
        self.context.update({'setting_name': setting_name})


class RateLimitError(StudioError):
    """Raised when a rate limit is exceeded (locally or upstream)."""

    http_status = 429

    def __init__(
        self,
        message: str,
        limit: Optional[str] = None,
        retry_after: Optional[int] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.BUSINESS_LOGIC)
        kwargs.setdefault('user_message', 'Rate limit exceeded. Please try again later.')
        super().__init__(message, **kwargs)

        self.limit = limit
        self.retry_after = retry_after

        self.context.update({
            'limit': limit,
            'retry_after': retry_after
        })


class InsufficientCreditsError(StudioError):
    """Raised when user has insufficient credits."""

    http_status = 402

    def __init__(
        self,
        message: str,
        required_credits: Optional[int] = None,
        available_credits: Optional[int] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.BUSINESS_LOGIC)
        kwargs.setdefault('user_message', 'Insufficient credits. Please add more credits to continue.')
        super().__init__(message, **kwargs)

        self.required_credits = required_credits
        self.available_credits = available_credits

        self.context.update({
            'required_credits': required_credits,
            'available_credits': available_credits
        })


def to_http_exception(error: StudioError) -> HTTPException:
    """Translate a StudioError into the HTTPException routers raise."""
    headers = None
    if isinstance(error, RateLimitError) and error.context.get('retry_after'):
        headers = {"Retry-After": str(error.context['retry_after'])}
    elif isinstance(error, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=error.http_status, detail=error.user_message, headers=headers)
