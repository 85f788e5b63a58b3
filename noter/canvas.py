"""Block editing on one canvas note.

A ``Canvas`` is bound to a single note id for its whole life. Timers started
by its block lifecycles and writes made by its drag sessions always target
that note, whichever note is active by the time they fire.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from noter.config import Settings
from noter.drag import ContainerSource, DragController, PointerEvent
from noter.geometry import GRID, CoordinateSpace, Position
from noter.lifecycle import (
    EXIT_SECONDS,
    GRACE_SECONDS,
    BlockLifecycle,
    BlockState,
    RemovalReason,
)
from noter.metrics import BLOCK_REMOVALS
from noter.models import Block, Note
from noter.placement import PlacementEngine
from noter.store import NoteStore
from noter.text import note_word_count
from noter.timers import Scheduler, default_scheduler

logger = logging.getLogger(__name__)

TAB = "  "


def _unmeasured() -> None:
    return None


class Canvas:
    def __init__(
        self,
        store: NoteStore,
        note_id: str,
        space: CoordinateSpace = GRID,
        container: ContainerSource = _unmeasured,
        scheduler: Optional[Scheduler] = None,
        grace_seconds: float = GRACE_SECONDS,
        exit_seconds: float = EXIT_SECONDS,
        on_focus: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store = store
        self.note_id = note_id
        self.space = space
        self.placement = PlacementEngine(space)
        self.drag = DragController(container, self._block, self._moved, space)
        self._container = container
        self._scheduler = default_scheduler(scheduler)
        self._grace_seconds = grace_seconds
        self._exit_seconds = exit_seconds
        self._on_focus = on_focus
        self._lifecycles: dict[str, BlockLifecycle] = {}

    @classmethod
    def from_settings(
        cls, store: NoteStore, note_id: str, settings: Settings, **kwargs: Any
    ) -> Canvas:
        return cls(
            store,
            note_id,
            grace_seconds=settings.block_grace_seconds,
            exit_seconds=settings.block_exit_seconds,
            **kwargs,
        )

    @property
    def note(self) -> Optional[Note]:
        return self.store.get(self.note_id)

    @property
    def blocks(self) -> list[Block]:
        note = self.note
        return list(note.blocks) if note else []

    def _block(self, block_id: str) -> Optional[Block]:
        note = self.note
        return note.block(block_id) if note else None

    def _content_of(self, block_id: str) -> str:
        block = self._block(block_id)
        return block.content if block else ""

    def lifecycle(self, block_id: str) -> Optional[BlockLifecycle]:
        """Lifecycle of a block; blocks loaded from storage start out idle."""
        lc = self._lifecycles.get(block_id)
        if lc is None and self._block(block_id) is not None:
            lc = self._track(block_id, BlockState.IDLE)
        return lc

    def _track(self, block_id: str, state: BlockState) -> BlockLifecycle:
        lc = BlockLifecycle(
            block_id,
            content=lambda: self._content_of(block_id),
            on_remove=self._removed,
            scheduler=self._scheduler,
            grace_seconds=self._grace_seconds,
            exit_seconds=self._exit_seconds,
            state=state,
            on_focus=self._on_focus,
        )
        self._lifecycles[block_id] = lc
        return lc

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add_block(
        self, width: Optional[float] = None, height: Optional[float] = None
    ) -> Optional[Block]:
        """Add a block at the first free slot (the toolbar "add" action)."""
        note = self.note
        if note is None:
            return None
        pos = self.placement.find_free_position(note.blocks, width, height)
        return self._create(pos, width, height)

    def add_block_at(
        self, client_x: float, client_y: float, on_background: bool = True
    ) -> Optional[Block]:
        """Add a block where the canvas background was double-clicked or double-tapped."""
        if not on_background or self.note is None:
            return None
        pos = self.placement.position_at_pointer(client_x, client_y, self._container())
        if pos is None:
            return None
        return self._create(pos, None, None)

    def _create(
        self, pos: Position, width: Optional[float], height: Optional[float]
    ) -> Optional[Block]:
        block = Block(
            x=pos.x,
            y=pos.y,
            width=width or self.space.default_width,
            height=height or self.space.default_height,
        )
        if self.store.add_block(self.note_id, block) is None:
            return None
        logger.debug("Block %s created at (%s, %s)", block.id, pos.x, pos.y)
        self._track(block.id, BlockState.CREATING).mount()
        return block

    # ------------------------------------------------------------------
    # Editing and focus
    # ------------------------------------------------------------------

    def edit(self, block_id: str, content: str) -> Optional[Block]:
        lc = self.lifecycle(block_id)
        if lc is None or not lc.alive:
            return None
        return self.store.update_block(self.note_id, block_id, content=content)

    def focus(self, block_id: str) -> None:
        lc = self.lifecycle(block_id)
        if lc is not None:
            lc.focus()

    def blur(self, block_id: str) -> None:
        lc = self.lifecycle(block_id)
        if lc is not None:
            lc.blur()

    def key(self, block_id: str, key: str, cursor: Optional[int] = None) -> bool:
        """Handle editing keys. Returns True when the key was consumed.

        Backspace in a blank block deletes it and Escape leaves the block.
        Tab indents at ``cursor``, or at the end of the text when omitted.
        """
        block = self._block(block_id)
        if block is None:
            return False
        if key == "Backspace" and not block.content:
            self.delete_block(block_id)
            return True
        if key == "Escape":
            self.blur(block_id)
            return True
        if key == "Tab":
            text = block.content
            at = len(text) if cursor is None else max(0, min(cursor, len(text)))
            self.edit(block_id, text[:at] + TAB + text[at:])
            return True
        return False

    def delete_block(self, block_id: str) -> None:
        """Explicit delete; a block being dragged stops being dragged first."""
        lc = self.lifecycle(block_id)
        if lc is None:
            return
        if self.drag.dragging_id == block_id:
            self.drag.cancel()
        lc.delete(RemovalReason.EXPLICIT)

    # ------------------------------------------------------------------
    # Dragging
    # ------------------------------------------------------------------

    def start_drag(self, block_id: str, event: PointerEvent) -> bool:
        lc = self.lifecycle(block_id)
        if lc is None or not lc.alive:
            return False
        return self.drag.start(block_id, event)

    def drag_move(self, event: PointerEvent) -> Optional[Position]:
        return self.drag.move(event)

    def end_drag(self, event: PointerEvent) -> bool:
        return self.drag.end(event)

    def _moved(self, block_id: str, x: float, y: float) -> None:
        self.store.update_block(self.note_id, block_id, x=x, y=y)

    # ------------------------------------------------------------------

    def _removed(self, block_id: str, reason: RemovalReason) -> None:
        self._lifecycles.pop(block_id, None)
        if self.store.remove_block(self.note_id, block_id):
            BLOCK_REMOVALS.labels(reason=reason.value).inc()
            logger.debug("Block %s removed (%s)", block_id, reason.value)

    def stats(self) -> dict[str, int]:
        """Word and block counts for the status bar."""
        note = self.note
        if note is None:
            return {"words": 0, "blocks": 0}
        return {"words": note_word_count(note), "blocks": len(note.blocks)}

    def close(self) -> None:
        """Stop dragging. Pending block timers still complete against this note."""
        self.drag.cancel()
