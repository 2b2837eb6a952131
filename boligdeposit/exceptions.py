"""
Custom Exception Classes for the BoligDeposit privacy service

This module defines custom exceptions for better error handling and
consistent error responses across the application.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes returned in every error body."""

    AUTH_FAILED = "AUTH_FAILED"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    AUTH_LOGIN_REQUIRED = "AUTH_LOGIN_REQUIRED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_REQUEST_NOT_FOUND = "RESOURCE_REQUEST_NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    ERASURE_BLOCKED = "ERASURE_BLOCKED"
    ERASURE_FAILED = "ERASURE_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class BoligDepositError(Exception):
    """Base exception class for all service errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(BoligDepositError):
    """Raised when authentication fails"""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: ErrorCode = ErrorCode.AUTH_FAILED,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message, status_code=status.HTTP_401_UNAUTHORIZED, error_code=error_code, details=details or {}
        )


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message=message, error_code=ErrorCode.AUTH_TOKEN_EXPIRED)


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid"""

    def __init__(self, message: str = "Invalid or malformed token"):
        super().__init__(message=message, error_code=ErrorCode.AUTH_TOKEN_INVALID)


class AuthenticationRequiredError(AuthenticationError):
    """Raised by the upstream API client on a 401; the caller should send the user to the login page"""

    def __init__(self, message: str = "Login required", redirect_to: str = "/login"):
        self.redirect_to = redirect_to
        super().__init__(
            message=message, error_code=ErrorCode.AUTH_LOGIN_REQUIRED, details={"redirect_to": redirect_to}
        )


class AuthorizationError(BoligDepositError):
    """Raised when user lacks permission for an action"""

    def __init__(self, message: str = "You do not have permission to perform this action", required_role: str | None = None):
        details = {"required_role": required_role} if required_role else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=ErrorCode.AUTH_PERMISSION_DENIED,
            details=details,
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(BoligDepositError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class RequestNotFoundError(ResourceNotFoundError):
    """Raised when a data subject request is not found"""

    def __init__(self, request_id: Any | None = None):
        super().__init__(
            resource_type="DataSubjectRequest",
            resource_id=request_id,
            error_code=ErrorCode.RESOURCE_REQUEST_NOT_FOUND,
        )


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(BoligDepositError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=error_details,
        )


class InvalidStatusTransitionError(BoligDepositError):
    """Raised when an invalid status transition is attempted"""

    def __init__(self, current_status: str, target_status: str, resource_type: str = "Resource"):
        super().__init__(
            message=f"Cannot transition {resource_type} from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"resource_type": resource_type, "current_status": current_status, "target_status": target_status},
        )


class ErasureBlockedError(BoligDepositError):
    """Raised by the HTTP layer when erasure is refused because of an active contract"""

    def __init__(self, user_id: str):
        super().__init__(
            message="Data cannot be erased while an active lease contract exists",
            status_code=status.HTTP_409_CONFLICT,
            error_code=ErrorCode.ERASURE_BLOCKED,
            details={"user_id": user_id},
        )


class ErasureFailedError(BoligDepositError):
    """Raised by the HTTP layer when an erasure job stopped partway"""

    def __init__(self, job_id: int | None, error: str | None = None):
        super().__init__(
            message="Data erasure did not complete and will be resumed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=ErrorCode.ERASURE_FAILED,
            details={"job_id": job_id, "error": error},
        )


# ============================================================================
# Storage & Service Exceptions
# ============================================================================


class StorageError(BoligDepositError):
    """Raised when reading or writing the backing store fails"""

    def __init__(self, message: str = "A storage error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=ErrorCode.STORAGE_ERROR,
            details=details,
        )


class ServiceError(BoligDepositError):
    """Raised when an upstream service call fails"""

    def __init__(self, message: str, service: str | None = None, status_code: int = status.HTTP_502_BAD_GATEWAY):
        details = {"service": service} if service else {}
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
        )
