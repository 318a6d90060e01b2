"""Custom exception classes for the Selorg client core."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

NETWORK_ERROR = "NETWORK_ERROR"
MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
CLIENT_ERROR = "CLIENT_ERROR"

DEFAULT_ERROR_MESSAGE = "An error occurred"
DEFAULT_NETWORK_MESSAGE = "Network error. Please check your connection."


class SelorgClientError(Exception):
    """Base exception for the Selorg client."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize Selorg client error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(SelorgClientError):
    """Configuration error occurred."""

    def __init__(
        self,
        message: str = "Configuration error",
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


# API Errors
class ApiError(SelorgClientError):
    """
    Normalized API error.

    Every failure coming out of the transport (non-2xx status, missing HTTP
    response, unexpected client-side exception) is converted into this shape
    before it reaches calling code.
    """

    def __init__(
        self,
        message: str = DEFAULT_ERROR_MESSAGE,
        code: Optional[str] = None,
        status: Optional[int] = None,
        errors: Optional[Dict[str, List[str]]] = None,
        recoverable: bool = True,
    ):
        """
        Initialize API error.

        Args:
            message: Human readable message (server supplied when available)
            code: Machine readable error code
            status: HTTP status code, None when no response was received
            errors: Field level validation errors
            recoverable: Whether retrying may succeed
        """
        self.code = code
        self.status = status
        self.errors = errors
        details: Dict[str, Any] = {}
        if code is not None:
            details["code"] = code
        if status is not None:
            details["status"] = status
        super().__init__(message or DEFAULT_ERROR_MESSAGE, recoverable, details)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the normalized error shape, omitting absent fields."""
        data: Dict[str, Any] = {"message": self.message}
        if self.code is not None:
            data["code"] = self.code
        if self.status is not None:
            data["status"] = self.status
        if self.errors is not None:
            data["errors"] = self.errors
        return data

    @classmethod
    def from_response(
        cls, status: int, body: Any = None, fallback_message: Optional[str] = None
    ) -> "ApiError":
        """
        Build a normalized error from a non-2xx response.

        Server supplied ``message``/``code``/``errors`` win; otherwise the
        transport message is used, then a generic message.

        Args:
            status: HTTP status code
            body: Parsed response body (any type)
            fallback_message: Transport level message

        Returns:
            ApiError subclass matching the status
        """
        payload = body if isinstance(body, dict) else {}

        message = payload.get("message")
        if not isinstance(message, str) or not message:
            message = fallback_message or DEFAULT_ERROR_MESSAGE

        code = payload.get("code")
        if code is not None and not isinstance(code, str):
            code = str(code)

        errors = _coerce_field_errors(payload.get("errors"))

        if status == 401:
            error_cls: type = UnauthorizedError
        elif status == 403:
            error_cls = ForbiddenError
        elif status == 404:
            error_cls = NotFoundError
        elif status >= 500:
            error_cls = ServerError
        else:
            error_cls = ApiError

        return error_cls(message=message, code=code, status=status, errors=errors)


class UnauthorizedError(ApiError):
    """Server rejected the current credentials (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized", **kwargs: Any):
        kwargs.setdefault("status", 401)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class ForbiddenError(ApiError):
    """Access to the resource is forbidden (HTTP 403)."""

    def __init__(self, message: str = "Forbidden", **kwargs: Any):
        kwargs.setdefault("status", 403)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class NotFoundError(ApiError):
    """Resource not found (HTTP 404)."""

    def __init__(self, message: str = "Not found", **kwargs: Any):
        kwargs.setdefault("status", 404)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)


class ServerError(ApiError):
    """Server side failure (HTTP 5xx)."""

    def __init__(self, message: str = "Server error", **kwargs: Any):
        kwargs.setdefault("status", 500)
        super().__init__(message, **kwargs)


class NetworkError(ApiError):
    """No HTTP response was received (connectivity failure or timeout)."""

    def __init__(self, message: str = DEFAULT_NETWORK_MESSAGE):
        super().__init__(message, code=NETWORK_ERROR, status=None, recoverable=True)


class MalformedResponseError(ApiError):
    """A 2xx response whose body is not a JSON object."""

    def __init__(self, message: str = "Malformed response from server", status: Optional[int] = None):
        super().__init__(message, code=MALFORMED_RESPONSE, status=status, recoverable=False)


# Credential storage Errors
class CredentialStoreError(SelorgClientError):
    """Durable credential storage failed."""

    def __init__(
        self,
        message: str = "Credential store operation failed",
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ):
        """
        Initialize credential store error.

        Args:
            message: Error message
            operation: Store operation that failed (get, set, remove)
            key: Storage key involved
        """
        self.operation = operation
        self.key = key
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if key:
            details["key"] = key
        super().__init__(message, recoverable=True, details=details)


# OTP Errors
class OTPError(SelorgClientError):
    """Base class for OTP login flow errors."""

    def __init__(
        self,
        message: str = "OTP error occurred",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class OTPFlowBusyError(OTPError):
    """Raised when an OTP operation is started while another is in flight."""

    def __init__(self, operation: str, in_flight: str):
        super().__init__(
            f"Cannot {operation} while {in_flight} is in progress",
            details={"operation": operation, "in_flight": in_flight},
        )


class OTPStateError(OTPError):
    """Raised when an OTP operation is not valid in the current state."""

    def __init__(self, operation: str, state: str):
        super().__init__(
            f"Cannot {operation} in state '{state}'",
            recoverable=False,
            details={"operation": operation, "state": state},
        )


class ResendCooldownError(OTPError):
    """Raised when a resend is attempted before the cooldown has elapsed."""

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Resend available in {remaining_seconds} seconds",
            details={"remaining_seconds": remaining_seconds},
        )


def _coerce_field_errors(value: Any) -> Optional[Dict[str, List[str]]]:
    """Coerce a server ``errors`` payload into ``{field: [messages]}``."""
    if not isinstance(value, dict):
        return None
    errors: Dict[str, List[str]] = {}
    for field, messages in value.items():
        if isinstance(messages, (list, tuple)):
            errors[str(field)] = [str(m) for m in messages]
        elif messages is not None:
            errors[str(field)] = [str(messages)]
    return errors


def get_api_error_message(err: Any, fallback: str = "Something went wrong") -> str:
    """
    Get a user-facing message from any error.

    Args:
        err: Error object (normalized ApiError or anything else)
        fallback: Message used when the error carries none

    Returns:
        Message to display
    """
    if err is None:
        return fallback
    message = getattr(err, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(err, dict):
        for key in ("message", "error"):
            value = err.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


def get_user_friendly_message(err: Any) -> str:
    """
    Map an error to a short message suitable for display.

    Args:
        err: Error object

    Returns:
        Human readable message, never a raw code
    """
    if isinstance(err, NetworkError):
        return "Unable to connect. Please check your internet connection."
    if isinstance(err, UnauthorizedError):
        return "Please log in to continue."
    if isinstance(err, ForbiddenError):
        return "You do not have permission to perform this action."
    if isinstance(err, NotFoundError):
        return "The requested resource was not found."
    if isinstance(err, ServerError):
        return "Server error. Please try again later."
    if isinstance(err, ApiError) and err.errors:
        first = next((msgs[0] for msgs in err.errors.values() if msgs), None)
        if first:
            return first
    return get_api_error_message(err, "An unexpected error occurred. Please try again.")
