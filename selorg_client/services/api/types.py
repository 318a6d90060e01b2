"""API Types - request options and the uniform response envelope."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class RequestOptions:
    """Per-call transport configuration."""

    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    timeout: Optional[float] = None
    skip_auth: bool = False


@dataclass
class ApiResponse(Generic[T]):
    """
    Uniform response envelope.

    ``success`` is the authoritative outcome flag: a 2xx response can still
    carry ``success: false`` for a business failure, so callers must check it
    independently of whether the call raised.

    Attributes:
        success: Outcome reported by the server
        data: Payload
        message: Human readable message
        error: Error description for business failures
        errors: Field level validation errors
        raw: The complete response body, for fields outside the envelope
    """

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "ApiResponse[Any]":
        """
        Build the envelope from a 2xx JSON object.

        A body without a ``success`` flag counts as success, matching the
        legacy shapes the backend still returns for some endpoints.
        Any ``success`` value other than a JSON boolean counts as failure.

        Args:
            body: Parsed JSON object

        Returns:
            ApiResponse
        """
        success = body.get("success", True)
        if not isinstance(success, bool):
            # "false", 0 and null are not success
            success = False
        message = body.get("message")
        error = body.get("error")
        errors = body.get("errors")
        return cls(
            success=success,
            data=body.get("data"),
            message=message if isinstance(message, str) else None,
            error=error if isinstance(error, str) else None,
            errors=errors if isinstance(errors, dict) else None,
            raw=body,
        )

    def failure_message(self, fallback: str) -> str:
        """Message to show for a ``success: false`` envelope."""
        return self.message or self.error or fallback
