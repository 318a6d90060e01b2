"""Auth Service - OTP wire calls and response normalization."""

from typing import Any, Dict, Optional, Tuple

from loguru import logger

from ...core.exceptions import ApiError
from ...utils.masking import mask_phone_number, mask_session_id
from ..api.client import ApiClient
from ..api.endpoints import AuthEndpoints
from ..api.types import ApiResponse, RequestOptions

DEFAULT_RESEND_COOLDOWN = 50


def _data_dict(response: ApiResponse[Any]) -> Dict[str, Any]:
    return response.data if isinstance(response.data, dict) else {}


def extract_session_id(response: ApiResponse[Any]) -> Optional[str]:
    """
    Find the OTP session id in a send/resend response.

    The backend has returned it both at the top level and under ``data``.
    The top-level value wins; only non-empty strings count.

    Args:
        response: Envelope from send-otp or resend-otp

    Returns:
        Session id, or None if neither location carries one
    """
    for candidate in (response.raw.get("sessionId"), _data_dict(response).get("sessionId")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def extract_resend_cooldown(
    response: ApiResponse[Any], default: int = DEFAULT_RESEND_COOLDOWN
) -> int:
    """
    Read the resend cooldown in seconds.

    ``data.resendCooldownSeconds`` wins over a top-level value. Anything that
    is not a positive integer is ignored.
    """
    for candidate in (
        _data_dict(response).get("resendCooldownSeconds"),
        response.raw.get("resendCooldownSeconds"),
    ):
        # bool is an int subclass
        if isinstance(candidate, int) and not isinstance(candidate, bool) and candidate > 0:
            return candidate
    return default


def extract_tokens(response: ApiResponse[Any]) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(access_token, refresh_token)`` from a verify response."""
    data = _data_dict(response)
    access_token = data.get("accessToken")
    refresh_token = data.get("refreshToken")
    return (
        access_token if isinstance(access_token, str) and access_token else None,
        refresh_token if isinstance(refresh_token, str) and refresh_token else None,
    )


class AuthService:
    """
    OTP authentication endpoints.

    Pure wire calls: nothing here touches the token manager. Committing tokens
    is the login flow's job.
    """

    def __init__(self, client: ApiClient):
        """
        Initialize auth service.

        Args:
            client: Transport facade
        """
        self.client = client

    async def send_otp(self, phone_number: str) -> ApiResponse[Any]:
        """
        Request an OTP for ``phone_number``.

        Sent without a bearer token, it precedes any session.

        Args:
            phone_number: Normalized phone number

        Returns:
            Envelope with ``data.sessionId`` on success

        Raises:
            ApiError: On transport failure or non-2xx status
        """
        logger.info(f"Sending OTP to {mask_phone_number(phone_number)}")
        return await self.client.post(
            AuthEndpoints.SEND_OTP,
            {"phoneNumber": phone_number},
            RequestOptions(skip_auth=True),
        )

    async def verify_otp(self, session_id: str, otp: str) -> ApiResponse[Any]:
        """
        Verify ``otp`` against the session it was issued for.

        Args:
            session_id: Session id from send/resend
            otp: Code entered by the user

        Returns:
            Envelope with ``data.accessToken`` and ``data.refreshToken`` on success

        Raises:
            ApiError: On transport failure or non-2xx status
        """
        logger.info(f"Verifying OTP for session {mask_session_id(session_id)}")
        return await self.client.post(
            AuthEndpoints.VERIFY_OTP, {"sessionId": session_id, "otp": otp}
        )

    async def resend_otp(self, session_id: str) -> ApiResponse[Any]:
        """Ask the server to resend the OTP for an existing session."""
        logger.info(f"Resending OTP for session {mask_session_id(session_id)}")
        return await self.client.post(AuthEndpoints.RESEND_OTP, {"sessionId": session_id})

    async def logout(self) -> bool:
        """
        Tell the server the session ends.

        Best effort: failures are logged, never raised.

        Returns:
            True if the server acknowledged the logout
        """
        try:
            response = await self.client.post(AuthEndpoints.LOGOUT)
        except ApiError as e:
            logger.warning(f"Logout request failed: {e.message}")
            return False

        if not response.success:
            logger.warning(f"Logout rejected: {response.failure_message('unknown reason')}")
        return response.success
