"""In-memory note collection with debounced persistence.

Every mutation is applied to memory immediately and then written to the
durable store once edits have been quiet for the debounce window. Creating
and deleting notes write straight away. Writes always serialise the whole
collection as it is when the write happens, so a flush scheduled while one
note was active can never carry stale content into another note.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from noter.config import Settings
from noter.metrics import STORE_WRITES
from noter.models import Block, Note, NoteColor, NoteMode, NotePatch, SaveStatus, new_id, now_ms
from noter.storage import KeyValueStore, build_store, decode_notes, encode_notes
from noter.text import matches
from noter.timers import Debouncer, Scheduler, default_scheduler

logger = logging.getLogger(__name__)

DEFAULT_KEY = "noter_notes"

StatusListener = Callable[[SaveStatus], None]


class NoteStore:
    """Owns the canonical list of notes and the active-note selection."""

    def __init__(
        self,
        durable: KeyValueStore,
        key: str = DEFAULT_KEY,
        debounce_seconds: float = 0.5,
        saved_display_seconds: float = 0.6,
        retry_attempts: int = 2,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._durable = durable
        self._key = key
        self._clock = clock
        self._retry_attempts = retry_attempts
        self._notes: list[Note] = []
        self._active_id: Optional[str] = None
        scheduler = default_scheduler(scheduler)
        self._flush_timer = Debouncer(debounce_seconds, scheduler)
        self._idle_timer = Debouncer(saved_display_seconds, scheduler)
        self._status = SaveStatus.IDLE
        self._listeners: list[StatusListener] = []
        self._failures = 0
        self.dirty = False
        self.last_error: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, scheduler: Optional[Scheduler] = None
    ) -> NoteStore:
        return cls(
            build_store(settings),
            key=settings.storage_key,
            debounce_seconds=settings.save_debounce_seconds,
            saved_display_seconds=settings.saved_display_seconds,
            retry_attempts=settings.write_retry_attempts,
            scheduler=scheduler,
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load(self) -> list[Note]:
        """Replace memory with the durable contents. Never raises."""
        try:
            raw = self._durable.get(self._key)
        except Exception as e:
            logger.warning("Failed to read notes: %s, starting fresh", e)
            raw = None
        self._notes = decode_notes(raw)
        self._active_id = self._notes[0].id if self._notes else None
        self.dirty = False
        logger.info("Loaded %d notes", len(self._notes))
        return list(self._notes)

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Note]:
        return self.get(self._active_id) if self._active_id else None

    def select(self, note_id: Optional[str]) -> Optional[Note]:
        """Make ``note_id`` the active note. Unknown ids leave the selection alone."""
        if note_id is None:
            self._active_id = None
            return None
        note = self.get(note_id)
        if note is not None:
            self._active_id = note.id
        return note

    def sorted_notes(self) -> list[Note]:
        """Pinned notes first, then most recently updated."""
        return sorted(self._notes, key=lambda n: (not n.pinned, -n.updated_at))

    def search(self, query: str) -> list[Note]:
        return [n for n in self.sorted_notes() if matches(n, query)]

    # ------------------------------------------------------------------
    # Note CRUD
    # ------------------------------------------------------------------

    def create(
        self,
        color: NoteColor = NoteColor.STONE,
        *,
        title: str = "",
        content: str = "",
        mode: NoteMode = NoteMode.CANVAS,
    ) -> Note:
        """Insert a new note at the front, select it and persist immediately."""
        now = self._clock()
        note_id = new_id()
        while self.get(note_id) is not None:
            note_id = new_id()
        note = Note(
            id=note_id,
            title=title,
            content=content,
            color=color,
            mode=mode,
            created_at=now,
            updated_at=now,
        )
        self._notes.insert(0, note)
        self._active_id = note.id
        logger.info("Created note %s", note.id)
        self._persist_now("immediate")
        return note

    def import_text(
        self, text: str, *, title: str = "", color: NoteColor = NoteColor.STONE
    ) -> Note:
        """Create a markdown note from imported text."""
        return self.create(color=color, title=title, content=text, mode=NoteMode.MARKDOWN)

    def mutate(self, note_id: str, **changes: Any) -> Optional[Note]:
        """Apply a partial update and schedule a debounced flush.

        Fields passed as None are left as they are. Returns the updated note,
        or None when ``note_id`` is unknown.
        """
        patch = NotePatch(**changes)
        note = self.get(note_id)
        if note is None:
            logger.debug("Mutation for unknown note %s dropped", note_id)
            return None
        updates = {
            name: getattr(patch, name)
            for name in patch.model_fields_set
            if getattr(patch, name) is not None
        }
        if not updates:
            return note
        for name, value in updates.items():
            setattr(note, name, value)
        note.updated_at = max(self._clock(), note.created_at)
        self._schedule_flush()
        return note

    def delete(self, note_id: str) -> bool:
        """Remove a note and persist immediately, re-selecting if it was active."""
        note = self.get(note_id)
        if note is None:
            return False
        self._notes.remove(note)
        if self._active_id == note_id:
            fallback = max(self._notes, key=lambda n: n.updated_at, default=None)
            self._active_id = fallback.id if fallback else None
        logger.info("Deleted note %s", note_id)
        self._persist_now("immediate")
        return True

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def add_block(self, note_id: str, block: Block) -> Optional[Block]:
        note = self.get(note_id)
        if note is None:
            return None
        self.mutate(note_id, blocks=[*note.blocks, block])
        return block

    def update_block(self, note_id: str, block_id: str, **changes: Any) -> Optional[Block]:
        """Replace a block with an updated copy (content, x, y, width, height)."""
        note = self.get(note_id)
        block = note.block(block_id) if note else None
        if note is None or block is None:
            return None
        updated = Block.model_validate({**block.model_dump(), **changes})
        self.mutate(
            note_id, blocks=[updated if b.id == block_id else b for b in note.blocks]
        )
        return updated

    def remove_block(self, note_id: str, block_id: str) -> bool:
        note = self.get(note_id)
        if note is None or note.block(block_id) is None:
            return False
        self.mutate(note_id, blocks=[b for b in note.blocks if b.id != block_id])
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def flush_pending(self) -> bool:
        return self._flush_timer.pending

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a save-status listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def flush(self) -> bool:
        """Write pending changes now instead of waiting for the debounce window."""
        self._flush_timer.cancel()
        if not self.dirty:
            return True
        return self._write("manual")

    def close(self) -> None:
        """Flush outstanding edits and stop all timers."""
        self.flush()
        self._flush_timer.cancel()
        self._idle_timer.cancel()

    def _set_status(self, status: SaveStatus) -> None:
        if status is self._status:
            return
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    def _mark_dirty(self) -> None:
        self.dirty = True
        self._failures = 0
        self._idle_timer.cancel()
        self._set_status(SaveStatus.SAVING)

    def _schedule_flush(self) -> None:
        self._mark_dirty()
        self._flush_timer.trigger(self._flush_due)

    def _persist_now(self, trigger: str) -> None:
        self._mark_dirty()
        self._flush_timer.cancel()
        self._write(trigger)

    def _flush_due(self) -> None:
        self._write("debounced")

    def _write(self, trigger: str) -> bool:
        payload = encode_notes(self._notes)
        try:
            self._durable.set(self._key, payload)
        except Exception as e:
            self._failures += 1
            self.last_error = str(e)
            STORE_WRITES.labels(trigger=trigger, status="error").inc()
            if self._failures <= self._retry_attempts:
                logger.error(
                    "Saving %d notes failed (attempt %d), retrying: %s",
                    len(self._notes),
                    self._failures,
                    e,
                )
                self._flush_timer.trigger(self._flush_due)
            else:
                logger.error(
                    "Saving %d notes failed %d times, keeping changes in memory: %s",
                    len(self._notes),
                    self._failures,
                    e,
                )
                self._set_status(SaveStatus.IDLE)
            return False

        self.dirty = False
        self._failures = 0
        self.last_error = None
        STORE_WRITES.labels(trigger=trigger, status="success").inc()
        logger.debug("Saved %d notes (%s)", len(self._notes), trigger)
        self._set_status(SaveStatus.SAVED)
        self._idle_timer.trigger(lambda: self._set_status(SaveStatus.IDLE))
        return True
