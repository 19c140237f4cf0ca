"""
Error handling - application exception hierarchy.
Every error carries a code, a message and details for the HTTP layer.
"""
from enum import Enum
from typing import Optional, Any, Dict
from fastapi import status


class ErrorCode(str, Enum):
    """Error codes."""
    # Client errors
    INVALID_INPUT = "INVALID_INPUT"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    BATCH_START_FAILED = "BATCH_START_FAILED"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # External services
    SEMANTIC_SERVICE_ERROR = "SEMANTIC_SERVICE_ERROR"
    CACHE_ERROR = "CACHE_ERROR"

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"


class BaseApplicationError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# Client errors (4xx)
class InvalidInputError(BaseApplicationError):
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_INPUT,
            details=details,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


class ResourceNotFoundError(BaseApplicationError):
    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        message = f"{resource_type} not found"
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id
            message = f"{resource_type} with id '{resource_id}' not found"

        super().__init__(
            message=message,
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
            details=details,
            status_code=status.HTTP_404_NOT_FOUND
        )


class BatchStartError(BaseApplicationError):
    """Raised synchronously when a batch cannot start (e.g. nothing to validate)."""
    def __init__(self, message: str, session_id: Optional[str] = None):
        details = {}
        if session_id:
            details["session_id"] = session_id

        super().__init__(
            message=message,
            error_code=ErrorCode.BATCH_START_FAILED,
            details=details,
            status_code=status.HTTP_400_BAD_REQUEST
        )


# Server errors (5xx)
class ConfigurationError(BaseApplicationError):
    def __init__(self, message: str, setting: Optional[str] = None):
        details = {}
        if setting:
            details["setting"] = setting

        super().__init__(
            message=f"Configuration error: {message}",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# External services
class SemanticServiceError(BaseApplicationError):
    def __init__(self, message: str, api_error: Optional[Exception] = None):
        details = {}
        if api_error:
            details["original_error"] = str(api_error)

        super().__init__(
            message=f"Semantic review API error: {message}",
            error_code=ErrorCode.SEMANTIC_SERVICE_ERROR,
            details=details,
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class CacheError(BaseApplicationError):
    def __init__(self, message: str, operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=f"Result cache error: {message}",
            error_code=ErrorCode.CACHE_ERROR,
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# Validation
class ValidationRunError(BaseApplicationError):
    def __init__(self, message: str, document_id: Optional[str] = None):
        details = {}
        if document_id:
            details["document_id"] = document_id

        super().__init__(
            message=f"Validation failed: {message}",
            error_code=ErrorCode.VALIDATION_FAILED,
            details=details,
            status_code=status.HTTP_409_CONFLICT
        )

