"""Per-block lifecycle: creation, focus changes and removal of empty blocks.

::

    CREATING --mount--> EDITING --blur (text)--> IDLE --focus--> EDITING
                           |
                           +--blur (blank)--> PENDING_DELETE --focus--> EDITING
                                                   |
                                            grace timer, still blank
                                                   v
    any live state --delete--> EXITING --exit delay--> REMOVED

``EXITING`` exists so a view can play a disappearance transition before the
block leaves the note; an exit delay of 0 removes immediately.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from noter.timers import Scheduler, TimerHandle, default_scheduler

logger = logging.getLogger(__name__)

GRACE_SECONDS = 0.3
EXIT_SECONDS = 0.16


class BlockState(str, Enum):
    CREATING = "creating"
    EDITING = "editing"
    IDLE = "idle"
    PENDING_DELETE = "pending_delete"
    EXITING = "exiting"
    REMOVED = "removed"


class RemovalReason(str, Enum):
    EXPLICIT = "explicit"
    EMPTY = "empty"


_TRANSITIONS: dict[BlockState, set[BlockState]] = {
    BlockState.CREATING: {BlockState.EDITING, BlockState.EXITING},
    BlockState.EDITING: {BlockState.IDLE, BlockState.PENDING_DELETE, BlockState.EXITING},
    BlockState.IDLE: {BlockState.EDITING, BlockState.EXITING},
    BlockState.PENDING_DELETE: {BlockState.EDITING, BlockState.IDLE, BlockState.EXITING},
    BlockState.EXITING: {BlockState.REMOVED},
    BlockState.REMOVED: set(),
}


class BlockLifecycle:
    """State machine for one block.

    ``content`` is read at the moment a guard is evaluated (blur, grace
    timer), never cached. ``on_remove`` receives the block id captured at
    construction.
    """

    def __init__(
        self,
        block_id: str,
        content: Callable[[], str],
        on_remove: Callable[[str, RemovalReason], None],
        scheduler: Optional[Scheduler] = None,
        grace_seconds: float = GRACE_SECONDS,
        exit_seconds: float = EXIT_SECONDS,
        state: BlockState = BlockState.CREATING,
        on_focus: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.block_id = block_id
        self._content = content
        self._on_remove = on_remove
        self._on_focus = on_focus
        self._scheduler = default_scheduler(scheduler)
        self.grace_seconds = grace_seconds
        self.exit_seconds = exit_seconds
        self._state = state
        self._grace: Optional[TimerHandle] = None
        self._exit: Optional[TimerHandle] = None
        self._reason = RemovalReason.EXPLICIT

    @property
    def state(self) -> BlockState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._state not in (BlockState.EXITING, BlockState.REMOVED)

    def _is_blank(self) -> bool:
        return not self._content().strip()

    def _move(self, target: BlockState) -> bool:
        if target not in _TRANSITIONS[self._state]:
            logger.debug(
                "Block %s: ignoring %s -> %s", self.block_id, self._state.value, target.value
            )
            return False
        logger.debug("Block %s: %s -> %s", self.block_id, self._state.value, target.value)
        self._state = target
        return True

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def mount(self) -> None:
        """Give a freshly created block focus, caret at the end."""
        if self._state is BlockState.CREATING and self._move(BlockState.EDITING):
            if self._on_focus is not None:
                self._on_focus(self.block_id)

    def focus(self) -> None:
        if self._state is BlockState.PENDING_DELETE:
            self._cancel_grace()
        if self._state in (BlockState.IDLE, BlockState.PENDING_DELETE, BlockState.CREATING):
            self._move(BlockState.EDITING)

    def blur(self) -> None:
        if self._state is not BlockState.EDITING:
            return
        if not self._is_blank():
            self._move(BlockState.IDLE)
            return
        self._move(BlockState.PENDING_DELETE)
        self._grace = self._scheduler.call_later(
            self.grace_seconds, self._grace_elapsed
        )

    def delete(self, reason: RemovalReason = RemovalReason.EXPLICIT) -> None:
        """Remove the block now, skipping any grace period."""
        if not self.alive:
            return
        self._cancel_grace()
        self._reason = reason
        self._move(BlockState.EXITING)
        if self.exit_seconds <= 0:
            self._remove()
        else:
            self._exit = self._scheduler.call_later(
                self.exit_seconds, self._remove
            )

    def dispose(self) -> None:
        """Cancel outstanding timers without removing the block."""
        self._cancel_grace()
        if self._exit is not None:
            self._exit.cancel()
            self._exit = None

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _grace_elapsed(self) -> None:
        self._grace = None
        if self._state is not BlockState.PENDING_DELETE:
            return
        if self._is_blank():
            self.delete(RemovalReason.EMPTY)
        else:
            self._move(BlockState.IDLE)

    def _remove(self) -> None:
        self._exit = None
        if self._move(BlockState.REMOVED):
            self._on_remove(self.block_id, self._reason)

    def _cancel_grace(self) -> None:
        if self._grace is not None:
            self._grace.cancel()
            self._grace = None
