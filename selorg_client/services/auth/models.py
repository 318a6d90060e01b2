"""OTP login models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class OTPState(str, Enum):
    """States of a single OTP login attempt."""

    IDLE = "idle"
    SENDING = "sending"
    SENT = "sent"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    # Verification failed, the session handle is still usable
    FAILED = "failed"
    RESENDING = "resending"


# States holding a usable session handle
HANDLE_STATES = frozenset({OTPState.SENT, OTPState.FAILED})

# States with a request outstanding
BUSY_STATES = frozenset({OTPState.SENDING, OTPState.VERIFYING, OTPState.RESENDING})


@dataclass
class SessionHandle:
    """
    Server-issued identifier binding one OTP attempt from send to verify.

    Kept in memory only; a restarted process has to send a new OTP.
    """

    session_id: str
    phone_number: str
    cooldown_seconds: int
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
