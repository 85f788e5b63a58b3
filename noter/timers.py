"""Timer scheduling shared by the store and block lifecycles.

Anything with ``call_later(delay, callback)`` returning a handle with
``cancel()`` can drive the timers; a running asyncio event loop does.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


def default_scheduler(scheduler: Optional[Scheduler]) -> Scheduler:
    """Return ``scheduler`` or the running event loop.

    Called when a timer owner is built, so a missing loop is reported before
    any state changes rather than when the first timer is due.
    """
    if scheduler is not None:
        return scheduler
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError(
            "No scheduler given and no running event loop; construct inside "
            "a coroutine or pass scheduler="
        ) from None


class Debouncer:
    """Runs a callback once a quiet period has passed since the last trigger."""

    def __init__(self, delay: float, scheduler: Optional[Scheduler] = None) -> None:
        self.delay = delay
        self._scheduler = default_scheduler(scheduler)
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, callback: Callable[[], Any], delay: Optional[float] = None) -> None:
        """Cancel any scheduled run and schedule ``callback`` afresh."""
        self.cancel()
        self._handle = self._scheduler.call_later(
            self.delay if delay is None else delay, self._fire, callback
        )

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], Any]) -> None:
        self._handle = None
        callback()
