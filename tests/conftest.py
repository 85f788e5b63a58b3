"""Shared fixtures: a virtual-time scheduler and a write-recording store."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from noter.storage import MemoryStore, decode_notes
from noter.store import DEFAULT_KEY, NoteStore

EPOCH_MS = 1_700_000_000_000


class FakeHandle:
    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Runs ``call_later`` timers only when the test advances virtual time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: list[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        self._seq += 1
        handle = FakeHandle(self.now + delay, self._seq, callback, args)
        self._timers.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target

    def clock_ms(self) -> int:
        return EPOCH_MS + int(self.now * 1000)


class RecordingStore(MemoryStore):
    """MemoryStore that remembers every value written."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        super().__init__(data)
        self.writes: list[str] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append(value)
        super().set(key, value)

    def last_notes(self):
        return decode_notes(self.writes[-1])


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def durable() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def store(durable: RecordingStore, scheduler: FakeScheduler) -> NoteStore:
    """A loaded, empty NoteStore on virtual time."""
    s = NoteStore(
        durable,
        key=DEFAULT_KEY,
        debounce_seconds=0.5,
        saved_display_seconds=0.6,
        scheduler=scheduler,
        clock=scheduler.clock_ms,
    )
    s.load()
    return s
