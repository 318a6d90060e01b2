"""Utility functions for masking sensitive data in logs."""

from typing import Any, Dict, Mapping, Optional, Set

DEFAULT_SENSITIVE_KEYS: Set[str] = {
    "otp",
    "accesstoken",
    "access_token",
    "refreshtoken",
    "refresh_token",
    "token",
    "authorization",
}

_PHONE_KEYS = {"phone", "phonenumber", "phone_number", "mobile"}


def mask_phone_number(phone: str) -> str:
    """
    Mask phone number for logging purposes.

    Example: +919876543210 -> +***3210

    Args:
        phone: Phone number to mask

    Returns:
        Masked phone number
    """
    if not phone or len(phone) < 4:
        return "***"

    if phone.startswith("+"):
        return "+" + "***" + phone[-4:]
    return "***" + phone[-4:]


def mask_token(token: Optional[str]) -> str:
    """
    Mask a bearer/refresh token, keeping a short prefix for correlation.

    Args:
        token: Token to mask

    Returns:
        Masked token, ``<none>`` when absent
    """
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "********"
    return token[:4] + "..." + "****"


def mask_session_id(session_id: Optional[str]) -> str:
    """Mask an OTP session identifier, keeping the last 4 characters."""
    if not session_id:
        return "<none>"
    if len(session_id) <= 4:
        return "****"
    return "****" + session_id[-4:]


def mask_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of ``headers`` with the Authorization value redacted."""
    masked: Dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() == "authorization":
            scheme, _, credentials = value.partition(" ")
            masked[key] = f"{scheme} {mask_token(credentials)}" if credentials else "********"
        else:
            masked[key] = value
    return masked


def mask_sensitive_dict(data: Any, sensitive_keys: Optional[Set[str]] = None) -> Any:
    """
    Mask sensitive values in a request/response payload for logging.

    Args:
        data: Payload (dicts and lists are walked recursively)
        sensitive_keys: Lowercase keys to mask (uses defaults if None)

    Returns:
        New payload with masked sensitive values
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_KEYS

    if isinstance(data, list):
        return [mask_sensitive_dict(item, sensitive_keys) for item in data]
    if not isinstance(data, dict):
        return data

    masked_data: Dict[str, Any] = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if key_lower in sensitive_keys:
            masked_data[key] = "********"
        elif key_lower in _PHONE_KEYS and isinstance(value, str):
            masked_data[key] = mask_phone_number(value)
        elif key_lower == "sessionid" and isinstance(value, str):
            masked_data[key] = mask_session_id(value)
        else:
            masked_data[key] = mask_sensitive_dict(value, sensitive_keys)
    return masked_data
