"""
election_backend/errors.py
Centralized Error Handling

CORE PRINCIPLES:
- Business-rule failures are structured results, never crashes
- All errors follow consistent structure
- Errors are user-safe (no stack traces)
- Errors are machine-readable

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / malformed request
- 401: Authentication missing or expired
- 403: Access forbidden (ownership / role / closed window / lock)
- 404: Resource does not exist
- 409: Duplicate, already processed, or role capacity reached
- 422: Validation error (Pydantic)
- 423: Resource locked against edits
- 429: Rate limit exceeded
- 502: Upstream storage returned something unusable
- 503: Downstream dependency unavailable
- 500: NEVER caused by user input (internal only)
"""

import logging
import uuid
from typing import Optional, Dict, Any

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_FILE = "INVALID_FILE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    AUTH_INVALID = "AUTH_INVALID"
    OTP_INVALID = "OTP_INVALID"
    OTP_EXPIRED = "OTP_EXPIRED"

    FORBIDDEN = "FORBIDDEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"
    SCOPE_VIOLATION = "SCOPE_VIOLATION"
    WINDOW_CLOSED = "WINDOW_CLOSED"

    NOT_FOUND = "NOT_FOUND"

    CONFLICT = "CONFLICT"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"

    RESOURCE_LOCKED = "RESOURCE_LOCKED"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        response = ErrorResponse(
            error=self.error,
            message=self.message,
            code=self.code,
            details=self.details or None
        )
        return response.model_dump(exclude_none=True)

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class ConflictError(APIError):
    """409 Conflict - Duplicate or already-processed resource"""
    def __init__(self, message: str, code: str = ErrorCode.CONFLICT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Conflict",
            message=message,
            code=code,
            details=details
        )


class CapacityExceededError(ConflictError):
    """409 Conflict - Supporter role is full for this nomination"""
    def __init__(self, role: str, cap: int):
        super().__init__(
            message=f"Maximum {role} limit reached ({cap})",
            code=ErrorCode.CAPACITY_EXCEEDED,
            details={"role": role, "cap": cap}
        )
        self.error = "Capacity Exceeded"


class LockedError(APIError):
    """423 Locked - Resource is locked against further edits"""
    def __init__(self, message: str, code: str = ErrorCode.RESOURCE_LOCKED):
        super().__init__(
            status_code=status.HTTP_423_LOCKED,
            error="Locked",
            message=message,
            code=code
        )


class GatewayError(APIError):
    """502 Bad Gateway - Upstream storage failed"""
    def __init__(self, message: str = "Upstream storage error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            error="Bad Gateway",
            message=message,
            code=ErrorCode.UPSTREAM_ERROR,
            details=details
        )


class UnavailableError(APIError):
    """503 Service Unavailable - Retryable downstream dependency failure"""
    def __init__(self, message: str = "A downstream service is unavailable. Please retry."):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="Service Unavailable",
            message=message,
            code=ErrorCode.SERVICE_UNAVAILABLE
        )


class InternalError(APIError):
    """500 Internal Server Error - Use sparingly, only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def validate_ownership(user_id: str, resource_user_id: str, resource_name: str = "resource"):
    """Validate that a resource belongs to the current user"""
    if user_id != resource_user_id:
        raise ForbiddenError(
            f"This {resource_name} does not belong to you",
            code=ErrorCode.OWNERSHIP_VIOLATION
        )


def new_log_id() -> str:
    """Short correlation id for internal error logs."""
    return str(uuid.uuid4())[:8]


ERROR_MAPPING = {
    400: ("Bad Request", ErrorCode.INVALID_INPUT),
    401: ("Unauthorized", ErrorCode.AUTH_REQUIRED),
    403: ("Forbidden", ErrorCode.FORBIDDEN),
    404: ("Not Found", ErrorCode.NOT_FOUND),
    405: ("Method Not Allowed", ErrorCode.INVALID_INPUT),
    409: ("Conflict", ErrorCode.CONFLICT),
    422: ("Validation Error", ErrorCode.VALIDATION_ERROR),
    423: ("Locked", ErrorCode.RESOURCE_LOCKED),
    429: ("Too Many Requests", ErrorCode.RATE_LIMITED),
    500: ("Internal Error", ErrorCode.INTERNAL_ERROR),
    502: ("Bad Gateway", ErrorCode.UPSTREAM_ERROR),
    503: ("Service Unavailable", ErrorCode.SERVICE_UNAVAILABLE),
}
