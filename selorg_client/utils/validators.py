"""Input validation for the OTP login flow."""

import re

PHONE_MIN_LENGTH = 10
PHONE_COUNTRY_PREFIX = "91"

INVALID_PHONE_MESSAGE = "Please enter a valid phone number"


def normalize_phone_number(phone: str) -> str:
    """
    Strip everything but digits and a leading ``+``.

    Args:
        phone: Raw phone number as entered

    Returns:
        Normalized phone number
    """
    if not phone:
        return ""
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}" if phone.startswith("+") else digits


def is_valid_phone_number(phone: str) -> bool:
    """
    Validate a phone number.

    Accepts 10 digit national numbers and 12 digit numbers carrying the
    ``91`` country prefix; separators are ignored.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == PHONE_MIN_LENGTH:
        return True
    return len(digits) == PHONE_MIN_LENGTH + 2 and digits.startswith(PHONE_COUNTRY_PREFIX)


def is_valid_otp(code: str, length: int = 6) -> bool:
    """
    Validate an OTP code.

    Args:
        code: Code entered by the user
        length: Expected number of digits

    Returns:
        True if ``code`` is exactly ``length`` digits
    """
    return bool(code) and re.fullmatch(rf"\d{{{length}}}", code) is not None


def invalid_otp_message(length: int = 6) -> str:
    """Message shown for an OTP of the wrong shape."""
    return f"Please enter a valid {length}-digit OTP"
