"""Session Context - wires the session and API client core together."""

from typing import Optional

from loguru import logger

from ..core.config.settings import ClientSettings, get_settings
from ..core.exceptions import ConfigurationError, CredentialStoreError
from ..utils.security.credential_store import CredentialStore, FileCredentialStore
from .api.client import ApiClient
from .api.events import SessionEvents
from .api.token_manager import TokenManager
from .auth.auth_service import AuthService
from .auth.otp_flow import OTPLoginFlow
from .auth.resend_timer import ResendCooldownTimer


class SessionContext:
    """
    Explicitly constructed session core for one process.

    Owns the token manager, the session event bus, the transport and the
    auth service. Tests build an isolated context per case.
    """

    def __init__(
        self,
        settings: ClientSettings,
        token_manager: TokenManager,
        events: SessionEvents,
        client: ApiClient,
        auth_service: AuthService,
    ):
        self.settings = settings
        self.token_manager = token_manager
        self.events = events
        self.client = client
        self.auth_service = auth_service
        self._started = False

    @classmethod
    def create(
        cls,
        settings: Optional[ClientSettings] = None,
        store: Optional[CredentialStore] = None,
    ) -> "SessionContext":
        """
        Build a context from settings.

        Args:
            settings: Client settings, the process settings if omitted
            store: Credential store, a file store at the configured path if omitted

        Returns:
            SessionContext, not yet started

        Raises:
            ConfigurationError: If the configured encryption key is invalid
        """
        settings = settings or get_settings()

        if store is None:
            key = settings.encryption_key.get_secret_value() if settings.encryption_key else None
            if key is None and settings.is_production():
                logger.warning("SELORG_ENCRYPTION_KEY not set, tokens are stored unencrypted")
            try:
                store = FileCredentialStore(settings.credential_store_path, encryption_key=key)
            except CredentialStoreError as e:
                raise ConfigurationError(f"SELORG_ENCRYPTION_KEY is invalid: {e.message}") from e

        events = SessionEvents()
        token_manager = TokenManager(store, events)
        client = ApiClient(token_manager, events=events, settings=settings)
        return cls(
            settings=settings,
            token_manager=token_manager,
            events=events,
            client=client,
            auth_service=AuthService(client),
        )

    async def start(self) -> bool:
        """
        Load persisted tokens.

        Requests issued before this completes go out unauthenticated.

        Returns:
            True if the token manager is ready
        """
        ready = await self.token_manager.initialize()
        self._started = ready
        return ready

    @property
    def started(self) -> bool:
        return self._started

    def new_login_flow(self, timer: Optional[ResendCooldownTimer] = None) -> OTPLoginFlow:
        """Create the OTP flow for a freshly shown login screen."""
        return OTPLoginFlow(
            self.auth_service, self.token_manager, timer=timer, settings=self.settings
        )

    async def logout(self) -> bool:
        """
        End the session.

        The server is notified best effort; local tokens are cleared either way.

        Returns:
            True if the stored tokens were removed
        """
        if self.token_manager.is_authenticated():
            await self.auth_service.logout()
        return await self.token_manager.clear_tokens()

    async def close(self) -> None:
        """Close the transport and detach the token manager."""
        await self.client.close()
        await self.token_manager.dispose()
        logger.debug("Session context closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
