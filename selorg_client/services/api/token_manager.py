"""Token Manager - in-memory auth tokens mirrored to durable storage."""

import asyncio
from typing import Optional, Tuple

from loguru import logger

from ...core.exceptions import CredentialStoreError
from ...core.retry import get_storage_retry
from ...utils.masking import mask_token
from ...utils.security.credential_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
)
from .events import SessionEvents, SessionInvalidated


class TokenManager:
    """
    Owns the access/refresh token pair for the running process.

    Reads are synchronous and only touch memory; the credential store is a
    durable mirror, never the source of truth for a live process. The two
    tokens are always replaced or cleared together.
    """

    def __init__(self, store: CredentialStore, events: Optional[SessionEvents] = None):
        """
        Initialize token manager.

        Args:
            store: Durable credential store
            events: Session event bus to subscribe to (optional)
        """
        self._store = store
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._initialized = False
        self._init_task: Optional[asyncio.Task] = None
        # Bumped by every set/clear so a slow initial load cannot resurrect old tokens
        self._generation = 0
        self._persist_lock = asyncio.Lock()
        self._events: Optional[SessionEvents] = None

        if events is not None:
            self.bind(events)

    @property
    def initialized(self) -> bool:
        """True once tokens were loaded from the credential store."""
        return self._initialized

    def bind(self, events: SessionEvents) -> None:
        """Clear tokens whenever ``events`` reports an invalidated session."""
        if self._events is not None and self._events is not events:
            self._events.unsubscribe(self.handle_session_invalidated)
        self._events = events
        events.subscribe(self.handle_session_invalidated)

    async def initialize(self) -> bool:
        """
        Load tokens from the credential store once.

        Safe to call any number of times, concurrently: every caller awaits
        the same load.

        Returns:
            True if the manager is ready, False if the store could not be read
        """
        if self._initialized:
            return True

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load())

        # One cancelled caller must not cancel the shared load
        return await asyncio.shield(self._init_task)

    async def _load(self) -> bool:
        generation = self._generation
        try:
            access_token, refresh_token = await self._read_tokens()
        except Exception as e:
            logger.error(f"Error initializing token manager: {e}")
            self._init_task = None
            return False

        if generation != self._generation:
            logger.debug("Tokens changed while loading, keeping in-memory values")
        elif access_token:
            self._access_token = access_token
            self._refresh_token = refresh_token or None
        else:
            # A refresh token without an access token belongs to no session
            self._access_token = None
            self._refresh_token = None

        self._initialized = True
        logger.info(
            f"Token manager initialized (authenticated={self.is_authenticated()}, "
            f"token={mask_token(self._access_token)})"
        )
        return True

    @get_storage_retry()
    async def _read_tokens(self) -> Tuple[Optional[str], Optional[str]]:
        access_token = await self._store.get(ACCESS_TOKEN_KEY)
        refresh_token = await self._store.get(REFRESH_TOKEN_KEY)
        return access_token, refresh_token

    def get_token(self) -> Optional[str]:
        """Get access token (synchronous, memory only)."""
        return self._access_token

    def get_refresh_token(self) -> Optional[str]:
        """Get refresh token (synchronous, memory only)."""
        return self._refresh_token

    def is_authenticated(self) -> bool:
        """
        Check whether an access token is present.

        This is a presence check only; expiry and signature are validated by
        the server, which answers 401 for a stale token.
        """
        return self._access_token is not None

    async def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """
        Replace the token pair and mirror it to the credential store.

        Memory is updated first, so the new pair is visible immediately. A
        missing ``refresh_token`` clears the previous one.

        Args:
            access_token: New access token
            refresh_token: New refresh token (optional)

        Raises:
            ValueError: If ``access_token`` is empty
            CredentialStoreError: If the durable write fails; the in-memory
                pair stays in effect for this process
        """
        if not access_token:
            raise ValueError("access_token must be a non-empty string")

        self._generation += 1
        self._access_token = access_token
        self._refresh_token = refresh_token or None

        async with self._persist_lock:
            try:
                await self._store.set(ACCESS_TOKEN_KEY, access_token)
                if refresh_token:
                    await self._store.set(REFRESH_TOKEN_KEY, refresh_token)
                else:
                    await self._store.remove(REFRESH_TOKEN_KEY)
            except Exception as e:
                logger.error(f"Failed to persist tokens: {e}")
                # The store holds the whole pair or nothing
                await self._discard_stored_pair()
                if isinstance(e, CredentialStoreError):
                    raise
                raise CredentialStoreError(
                    f"Failed to persist tokens: {e}", operation="set"
                ) from e

        logger.info(f"Tokens updated (token={mask_token(access_token)})")

    async def _discard_stored_pair(self) -> None:
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY):
            try:
                await self._store.remove(key)
            except Exception as e:
                logger.error(f"Could not remove stored {key} after failed write: {e}")

    async def clear_tokens(self) -> bool:
        """
        Drop both tokens from memory and from the credential store.

        Safe before ``initialize()`` and when called repeatedly.

        Returns:
            True if the durable copy was removed as well
        """
        self._generation += 1
        self._access_token = None
        self._refresh_token = None

        async with self._persist_lock:
            try:
                await self._store.remove(ACCESS_TOKEN_KEY)
                await self._store.remove(REFRESH_TOKEN_KEY)
            except Exception as e:
                logger.error(f"Error clearing stored tokens: {e}")
                return False

        logger.info("Tokens cleared")
        return True

    async def handle_session_invalidated(self, event: SessionInvalidated) -> None:
        """Session event listener: the server rejected the token."""
        await self.clear_tokens()

    async def dispose(self) -> None:
        """Unsubscribe from session events and abandon a pending load."""
        if self._events is not None:
            self._events.unsubscribe(self.handle_session_invalidated)
            self._events = None

        task, self._init_task = self._init_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
