"""Keeps an external markdown editor and the note store in step."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from noter.store import NoteStore

logger = logging.getLogger(__name__)

InsertText = Callable[[str], str]


class MarkdownEditor(Protocol):
    """The rich-text component, seen as a markdown text sink."""

    def set_markdown(self, text: str) -> None: ...


class EditorBridge:
    """Binds one editor to a note's body, or to one block when ``block_id`` is set.

    Content pushed into the editor programmatically may come straight back
    as a change event; those echoes are dropped instead of being recorded
    as user edits.
    """

    def __init__(
        self,
        store: NoteStore,
        note_id: str,
        editor: MarkdownEditor,
        block_id: Optional[str] = None,
    ) -> None:
        self._store = store
        self.note_id = note_id
        self.block_id = block_id
        self._editor = editor
        self._applying = False
        self._last: Optional[str] = None

    @property
    def markdown(self) -> str:
        """Text the editor currently shows."""
        return self._last or ""

    def _stored(self) -> Optional[str]:
        note = self._store.get(self.note_id)
        if note is None:
            return None
        if self.block_id is None:
            return note.content
        block = note.block(self.block_id)
        return block.content if block else None

    def _record(self, text: str) -> None:
        if self.block_id is None:
            self._store.mutate(self.note_id, content=text)
        else:
            self._store.update_block(self.note_id, self.block_id, content=text)

    def sync(self) -> bool:
        """Push the stored text into the editor if it differs from what it shows."""
        stored = self._stored()
        if stored is None or stored == self._last:
            return False
        self._push(stored)
        return True

    def _push(self, text: str) -> None:
        self._applying = True
        try:
            self._last = text
            self._editor.set_markdown(text)
        finally:
            self._applying = False

    def on_change(self, markdown: str) -> None:
        """Editor reported a document change."""
        if self._applying:
            logger.debug("Ignoring echoed editor update for %s", self.note_id)
            return
        if markdown == self._last:
            return
        self._last = markdown
        self._record(markdown)

    def insert(self, text: str, cursor: Optional[int] = None) -> str:
        """Insert ``text`` at ``cursor``, or after a blank line at the end.

        This is the capability handed to collaborators such as the assistant
        panel. The stored text is the base, so edits made through other paths
        since the last sync are kept. Returns the new document.
        """
        current = self._stored()
        if current is None:
            current = self.markdown
        if cursor is None:
            sep = "" if not current or current.endswith("\n") else "\n\n"
            updated = current + sep + text
        else:
            at = max(0, min(cursor, len(current)))
            updated = current[:at] + text + current[at:]
        self._push(updated)
        self._record(updated)
        return updated
