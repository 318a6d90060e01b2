"""Session lifecycle events shared by the interceptors and the token manager."""

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Union

from loguru import logger


@dataclass(frozen=True)
class SessionInvalidated:
    """The server declared the current access token invalid."""

    reason: str
    status: Optional[int] = None
    path: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


SessionListener = Callable[[SessionInvalidated], Union[None, Awaitable[Any]]]


class SessionEvents:
    """Listener registry for session invalidation."""

    def __init__(self) -> None:
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> None:
        """Register ``listener``; registering twice is a no-op."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        """Remove ``listener`` if registered."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, event: SessionInvalidated) -> None:
        """
        Deliver ``event`` to every listener, awaiting async listeners.

        A failing listener is logged and does not stop delivery to the others.

        Args:
            event: Event to deliver
        """
        logger.warning(
            f"Session invalidated ({event.reason}, status={event.status}, path={event.path})"
        )
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Session listener {listener!r} failed: {e}")
