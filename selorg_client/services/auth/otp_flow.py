"""OTP Login Flow - send, verify and resend for one login screen."""

from typing import Any, Dict, FrozenSet, Optional

from loguru import logger

from ...core.config.settings import ClientSettings, get_settings
from ...core.exceptions import (
    ApiError,
    CredentialStoreError,
    OTPFlowBusyError,
    OTPStateError,
    ResendCooldownError,
    get_api_error_message,
)
from ...utils.masking import mask_phone_number, mask_session_id
from ...utils.validators import (
    INVALID_PHONE_MESSAGE,
    invalid_otp_message,
    is_valid_otp,
    is_valid_phone_number,
    normalize_phone_number,
)
from ..api.token_manager import TokenManager
from .auth_service import (
    AuthService,
    extract_resend_cooldown,
    extract_session_id,
    extract_tokens,
)
from .models import BUSY_STATES, HANDLE_STATES, OTPState, SessionHandle
from .resend_timer import ResendCooldownTimer

SEND_FAILED_MESSAGE = "Failed to send OTP"
SEND_ERROR_MESSAGE = "Failed to send OTP. Please try again."
VERIFY_FAILED_MESSAGE = "Invalid OTP. Please try again."
VERIFY_ERROR_MESSAGE = "Failed to verify OTP. Please try again."
RESEND_FAILED_MESSAGE = "Failed to resend OTP. Please try again."
SESSION_NOT_SAVED_MESSAGE = "Logged in, but the session could not be saved on this device."

SEND_STATES: FrozenSet[OTPState] = frozenset({OTPState.IDLE, OTPState.SENT, OTPState.FAILED})


class OTPLoginFlow:
    """
    State machine for one OTP login attempt.

    ``IDLE -> SENDING -> SENT -> VERIFYING -> VERIFIED``, with ``FAILED``
    keeping the session handle so the user can retry, and ``RESENDING``
    reachable from ``SENT``/``FAILED`` once the cooldown expired.

    One operation runs at a time. Results arriving after ``dispose()`` are
    dropped without touching the flow.
    """

    def __init__(
        self,
        auth_service: AuthService,
        token_manager: TokenManager,
        timer: Optional[ResendCooldownTimer] = None,
        settings: Optional[ClientSettings] = None,
    ):
        """
        Initialize OTP login flow.

        Args:
            auth_service: OTP wire calls
            token_manager: Receives the tokens of a verified login
            timer: Resend cooldown timer
            settings: Settings for cooldown and OTP length defaults
        """
        settings = settings or get_settings()

        self._auth = auth_service
        self._token_manager = token_manager
        self.default_cooldown = settings.otp_resend_cooldown
        self.otp_length = settings.otp_length
        self.timer = timer or ResendCooldownTimer(duration=self.default_cooldown)

        self._state = OTPState.IDLE
        self._handle: Optional[SessionHandle] = None
        self._error: Optional[str] = None
        self._code_input = ""
        self._user: Optional[Dict[str, Any]] = None
        self._persist_error: Optional[str] = None
        self._disposed = False

    @property
    def state(self) -> OTPState:
        return self._state

    @property
    def handle(self) -> Optional[SessionHandle]:
        return self._handle

    @property
    def error(self) -> Optional[str]:
        """Message to display for the last failure."""
        return self._error

    @property
    def code_input(self) -> str:
        return self._code_input

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        """User profile returned by a successful verification."""
        return self._user

    @property
    def persist_error(self) -> Optional[str]:
        """
        Warning for a verified login whose tokens could not be stored.

        The session works for this process but is lost on restart.
        """
        return self._persist_error

    @property
    def busy(self) -> bool:
        """True while a request is outstanding; triggers must be disabled."""
        return self._state in BUSY_STATES

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def can_resend(self) -> bool:
        return self._state in HANDLE_STATES and self.timer.can_resend

    def set_code_input(self, code: str) -> None:
        """Store the code as typed, keeping digits only."""
        self._code_input = "".join(ch for ch in (code or "") if ch.isdigit())[: self.otp_length]
        self._error = None

    def _begin(self, operation: str, allowed: FrozenSet[OTPState]) -> None:
        if self._disposed:
            raise OTPStateError(operation, "disposed")
        if self.busy:
            raise OTPFlowBusyError(operation, self._state.value)
        if self._state not in allowed:
            raise OTPStateError(operation, self._state.value)

    def _dropped(self, operation: str) -> bool:
        if self._disposed:
            logger.debug(f"Dropping {operation} result, login flow was disposed")
        return self._disposed

    async def send_otp(self, phone_number: str) -> bool:
        """
        Request an OTP for ``phone_number``.

        A successful send replaces any earlier session handle and restarts
        the resend cooldown.

        Args:
            phone_number: Phone number as entered

        Returns:
            True if the flow moved to SENT

        Raises:
            OTPFlowBusyError: If another operation is in flight
            OTPStateError: If the flow is verified or disposed
        """
        self._begin("send OTP", SEND_STATES)

        phone = normalize_phone_number(phone_number)
        if not is_valid_phone_number(phone):
            self._error = INVALID_PHONE_MESSAGE
            return False

        previous = self._state
        self._state = OTPState.SENDING
        self._error = None

        try:
            response = await self._auth.send_otp(phone)
        except ApiError as e:
            if self._dropped("send OTP"):
                return False
            logger.error(f"Send OTP failed: {e.message}")
            return self._send_failed(get_api_error_message(e, SEND_ERROR_MESSAGE))
        except BaseException:
            if not self._disposed:
                self._state = previous
            raise

        if self._dropped("send OTP"):
            return False

        if not response.success:
            return self._send_failed(response.failure_message(SEND_FAILED_MESSAGE))

        session_id = extract_session_id(response)
        if session_id is None:
            logger.warning(f"Send OTP returned no session id for {mask_phone_number(phone)}")
            return self._send_failed(response.message or SEND_FAILED_MESSAGE)

        cooldown = extract_resend_cooldown(response, self.default_cooldown)
        self._handle = SessionHandle(
            session_id=session_id, phone_number=phone, cooldown_seconds=cooldown
        )
        self._code_input = ""
        self._state = OTPState.SENT
        self.timer.start(cooldown)

        logger.info(f"OTP sent (session={mask_session_id(session_id)}, cooldown={cooldown}s)")
        return True

    def _send_failed(self, message: str) -> bool:
        self._state = OTPState.IDLE
        self._handle = None
        self._error = message
        self.timer.cancel()
        return False

    async def verify_otp(self, code: Optional[str] = None) -> bool:
        """
        Verify the entered code against the latest session handle.

        On success the returned tokens are committed to the token manager;
        this is the only place a login sets tokens.

        Args:
            code: Code to verify, the stored code input if omitted

        Returns:
            True if the flow moved to VERIFIED

        Raises:
            OTPFlowBusyError: If another operation is in flight
            OTPStateError: If no OTP was sent
        """
        self._begin("verify OTP", HANDLE_STATES)

        if code is not None:
            self.set_code_input(code)
        otp = self._code_input
        if not is_valid_otp(otp, self.otp_length):
            self._error = invalid_otp_message(self.otp_length)
            return False

        # Read at submit time: a resend may have replaced the handle
        handle = self._handle
        previous = self._state
        self._state = OTPState.VERIFYING
        self._error = None

        try:
            response = await self._auth.verify_otp(handle.session_id, otp)
        except ApiError as e:
            if self._dropped("verify OTP"):
                return False
            logger.error(f"Verify OTP failed: {e.message}")
            return self._verify_failed(get_api_error_message(e, VERIFY_ERROR_MESSAGE))
        except BaseException:
            if not self._disposed:
                self._state = previous
            raise

        if self._dropped("verify OTP"):
            return False

        access_token, refresh_token = extract_tokens(response)
        if not response.success or access_token is None:
            return self._verify_failed(response.failure_message(VERIFY_FAILED_MESSAGE))

        try:
            await self._token_manager.set_tokens(access_token, refresh_token)
        except CredentialStoreError as e:
            # Tokens are live in memory but will not survive a restart
            logger.warning(f"Verified session was not persisted: {e.message}")
            self._persist_error = SESSION_NOT_SAVED_MESSAGE

        data = response.data if isinstance(response.data, dict) else {}
        user = data.get("user")
        self._user = user if isinstance(user, dict) else None

        self._handle = None
        self._code_input = ""
        self._state = OTPState.VERIFIED
        self.timer.cancel()

        logger.info(f"OTP verified (session={mask_session_id(handle.session_id)})")
        return True

    def _verify_failed(self, message: str) -> bool:
        self._state = OTPState.FAILED
        self._error = message
        return False

    async def resend_otp(self) -> bool:
        """
        Resend the OTP for the current session.

        Returns:
            True if the server accepted the resend

        Raises:
            ResendCooldownError: If the cooldown has not expired; nothing is sent
            OTPFlowBusyError: If another operation is in flight
            OTPStateError: If no OTP was sent
        """
        self._begin("resend OTP", HANDLE_STATES)

        if not self.timer.can_resend:
            raise ResendCooldownError(self.timer.remaining)

        handle = self._handle
        previous = self._state
        self._state = OTPState.RESENDING
        self._error = None
        self._code_input = ""

        try:
            response = await self._auth.resend_otp(handle.session_id)
        except ApiError as e:
            if self._dropped("resend OTP"):
                return False
            logger.error(f"Resend OTP failed: {e.message}")
            self._state = previous
            self._error = get_api_error_message(e, RESEND_FAILED_MESSAGE)
            return False
        except BaseException:
            if not self._disposed:
                self._state = previous
            raise

        if self._dropped("resend OTP"):
            return False

        if not response.success:
            self._state = previous
            self._error = response.failure_message(RESEND_FAILED_MESSAGE)
            return False

        session_id = extract_session_id(response) or handle.session_id
        cooldown = extract_resend_cooldown(response, self.default_cooldown)
        self._handle = SessionHandle(
            session_id=session_id,
            phone_number=handle.phone_number,
            cooldown_seconds=cooldown,
        )
        self._state = OTPState.SENT
        self.timer.start(cooldown)

        logger.info(f"OTP resent (session={mask_session_id(session_id)}, cooldown={cooldown}s)")
        return True

    def on_focus(self) -> None:
        """Hosting screen returned to the foreground."""
        self.timer.resume()

    def on_blur(self) -> None:
        """Hosting screen left the foreground."""
        self.timer.pause()

    def reset(self) -> None:
        """Abandon the attempt and return to IDLE."""
        if self.busy:
            raise OTPFlowBusyError("reset", self._state.value)
        self.timer.cancel()
        self._state = OTPState.IDLE
        self._handle = None
        self._error = None
        self._code_input = ""
        self._user = None
        self._persist_error = None

    def dispose(self) -> None:
        """Hosting screen is gone; stop the timer and ignore late results."""
        self._disposed = True
        self.timer.cancel()
