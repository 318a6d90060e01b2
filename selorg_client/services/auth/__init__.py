"""OTP authentication - wire service, cooldown timer and login flow."""

from selorg_client.services.auth.auth_service import (
    AuthService,
    extract_resend_cooldown,
    extract_session_id,
    extract_tokens,
)
from selorg_client.services.auth.models import OTPState, SessionHandle
from selorg_client.services.auth.otp_flow import OTPLoginFlow
from selorg_client.services.auth.resend_timer import ResendCooldownTimer, TimerState

__all__ = [
    "AuthService",
    "OTPLoginFlow",
    "OTPState",
    "SessionHandle",
    "ResendCooldownTimer",
    "TimerState",
    "extract_session_id",
    "extract_resend_cooldown",
    "extract_tokens",
]
