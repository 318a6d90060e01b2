"""Resend Cooldown Timer - foreground-only countdown gating OTP resends."""

import asyncio
from enum import Enum
from typing import Callable, Optional

from loguru import logger

DEFAULT_COOLDOWN_SECONDS = 50


class TimerState(str, Enum):
    """Countdown states."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


class ResendCooldownTimer:
    """
    Countdown that only advances while the hosting screen is focused.

    Time spent in the background is not credited: ``pause()`` stops the
    countdown and ``resume()`` continues from the last value. At most one
    countdown task exists; ``start()`` cancels the previous one first.

    Pass ``tick_interval=None`` to drive the countdown manually with
    ``tick()``.
    """

    def __init__(
        self,
        duration: int = DEFAULT_COOLDOWN_SECONDS,
        tick_interval: Optional[float] = 1.0,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize cooldown timer.

        Args:
            duration: Default countdown length in ticks
            tick_interval: Seconds per tick, None for manual ticking
            on_tick: Called with the remaining value after every tick
        """
        if duration < 0:
            raise ValueError("duration must be >= 0")

        self.duration = duration
        self.tick_interval = tick_interval
        self.on_tick = on_tick

        self._remaining = 0
        self._state = TimerState.IDLE
        self._focused = True
        self._task: Optional[asyncio.Task] = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def focused(self) -> bool:
        return self._focused

    @property
    def can_resend(self) -> bool:
        """True only once the countdown reached zero."""
        return self._remaining == 0

    @property
    def active(self) -> bool:
        """True while a countdown task is scheduled."""
        return self._task is not None and not self._task.done()

    def start(self, seconds: Optional[int] = None) -> None:
        """
        (Re)start the countdown.

        Args:
            seconds: Countdown length, ``duration`` if omitted
        """
        self._cancel_task()

        self._remaining = max(0, self.duration if seconds is None else int(seconds))
        if self._remaining == 0:
            self._state = TimerState.EXPIRED
            return

        if self._focused:
            self._state = TimerState.RUNNING
            self._schedule()
        else:
            self._state = TimerState.PAUSED

        logger.debug(f"Resend cooldown started ({self._remaining}s, state={self._state.value})")

    def pause(self) -> None:
        """Screen left the foreground."""
        self._focused = False
        if self._state == TimerState.RUNNING:
            self._cancel_task()
            self._state = TimerState.PAUSED

    def resume(self) -> None:
        """Screen returned to the foreground."""
        self._focused = True
        if self._state == TimerState.PAUSED:
            self._state = TimerState.RUNNING
            self._schedule()

    def tick(self) -> int:
        """
        Advance the countdown by one unit.

        Ignored unless running.

        Returns:
            Remaining value
        """
        if self._state != TimerState.RUNNING:
            return self._remaining

        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self._state = TimerState.EXPIRED

        if self.on_tick is not None:
            try:
                self.on_tick(self._remaining)
            except Exception as e:
                logger.error(f"Cooldown tick callback failed: {e}")

        return self._remaining

    def cancel(self) -> None:
        """Stop the countdown and return to idle."""
        self._cancel_task()
        self._remaining = 0
        self._state = TimerState.IDLE

    def format_remaining(self) -> str:
        """Remaining time as ``m:ss``."""
        minutes, seconds = divmod(self._remaining, 60)
        return f"{minutes}:{seconds:02d}"

    def _schedule(self) -> None:
        if self.tick_interval is None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self._state == TimerState.RUNNING:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
