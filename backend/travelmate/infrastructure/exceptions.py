"""
Custom Exceptions for TravelMate

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class TravelMateError(Exception):
    """Base exception for all TravelMate errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class InvalidRequestError(TravelMateError):
    """Raised when request input has the wrong shape or an unpurchasable tier."""
    pass


class AuthenticationError(TravelMateError):
    """Raised when credentials do not match an account."""
    pass


class DatabaseError(TravelMateError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(DatabaseError):
    """Raised on a duplicate email or a provider customer id mismatch."""
    pass


class InvalidSignatureError(TravelMateError):
    """Raised when a webhook payload fails provider signature verification."""
    pass


class MalformedEventError(TravelMateError):
    """Raised when a verified provider event lacks required metadata."""

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        missing_fields: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if event_id:
            details["event_id"] = event_id
        if missing_fields:
            details["missing_fields"] = missing_fields
        super().__init__(message, details, original_error)


class GatewayError(TravelMateError):
    """Raised when the billing provider call fails. Carries upstream status/code."""

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        code: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if http_status:
            details["http_status"] = http_status
        if code:
            details["code"] = code
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)
        self.http_status = http_status
        self.code = code


class ConfigurationError(TravelMateError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
