"""
Error Handling & Sanitization
Prevents information leakage through error messages

REQUIREMENTS:
- No storage or credential details in error responses
- Generic error messages for users
- Detailed errors only in logs, keyed by an error id
- Consistent error format
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from medreminder.core.exceptions import (
    RecordStoreError,
    MedicineNotFoundError,
    DoseNotFoundError,
    PrescriptionExtractionError,
)
from medreminder.core.logging import log_error

logger = logging.getLogger(__name__)


class ErrorSanitizer:
    """Sanitizes errors to prevent information leakage"""

    SENSITIVE_PATTERNS = [
        'password', 'secret', 'token', 'key', 'credential',
        'database', 'connection', 'sql', 'query', 'stack',
        'traceback', 'file', 'path', 'internal', 'server'
    ]

    @staticmethod
    def sanitize_error(error: Exception) -> Dict[str, Any]:
        """
        Sanitize error for client response

        Args:
            error: Exception instance

        Returns:
            Sanitized error dictionary
        """
        if isinstance(error, HTTPException):
            return {
                "error": error.detail,
                "status_code": error.status_code,
                "type": "http_exception"
            }

        if isinstance(error, (MedicineNotFoundError, DoseNotFoundError)):
            return {
                "error": "Resource not found",
                "status_code": 404,
                "type": "not_found"
            }

        if isinstance(error, RecordStoreError):
            return {
                "error": "Service temporarily unavailable",
                "status_code": 503,
                "type": "service_unavailable",
                "error_id": ErrorSanitizer._generate_error_id()
            }

        if isinstance(error, PrescriptionExtractionError):
            return {
                "error": "Prescription could not be analyzed",
                "status_code": 502 if error.upstream else 400,
                "type": "extraction_error"
            }

        error_lower = str(error).lower()
        if any(pattern in error_lower for pattern in ErrorSanitizer.SENSITIVE_PATTERNS):
            return {
                "error": "An error occurred processing your request",
                "status_code": 500,
                "type": "internal_error",
                "error_id": ErrorSanitizer._generate_error_id()
            }

        if type(error).__name__ in ["ValidationError", "ValueError"]:
            return {
                "error": "Validation error",
                "status_code": 400,
                "type": "validation_error"
            }

        return {
            "error": "An error occurred processing your request",
            "status_code": 500,
            "type": "internal_error",
            "error_id": ErrorSanitizer._generate_error_id()
        }

    @staticmethod
    def _generate_error_id() -> str:
        """Generate a unique error ID for tracking"""
        return str(uuid.uuid4())[:8]


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to catch and sanitize unhandled errors
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            error_id = ErrorSanitizer._generate_error_id()
            log_error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}",
                logger_name="error_handler",
                exc_info=True
            )

            sanitized = ErrorSanitizer.sanitize_error(e)
            sanitized["error_id"] = error_id

            return JSONResponse(
                status_code=sanitized["status_code"],
                content=sanitized
            )


def create_error_response(error: Exception, status_code: Optional[int] = None) -> JSONResponse:
    """
    Create a sanitized error response

    Args:
        error: Exception instance
        status_code: HTTP status code overriding the sanitizer's choice

    Returns:
        JSONResponse with sanitized error
    """
    sanitized = ErrorSanitizer.sanitize_error(error)
    if status_code is not None:
        sanitized["status_code"] = status_code

    log_error(
        f"Error response: {type(error).__name__}: {str(error)}",
        logger_name="error_handler",
    )

    return JSONResponse(
        status_code=sanitized["status_code"],
        content=sanitized
    )
