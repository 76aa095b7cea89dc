"""Custom exceptions for the CatalogRec API.

Infrastructure failures raised by the document store or the vector cache are
translated into these types so the API can answer with a structured error.
"""

from typing import Any, Dict, Optional


class CatalogRecException(Exception):
    """Base exception for CatalogRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class StoreUnavailableError(CatalogRecException):
    """Raised when the document store cannot be reached."""

    def __init__(self, error: Exception):
        message = f"Document store unavailable: {str(error)}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class CacheUnavailableError(CatalogRecException):
    """Raised when the vector cache cannot be reached."""

    def __init__(self, error: Exception):
        message = f"Vector cache unavailable: {str(error)}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
