"""Text helpers for note lists and status bars."""

from __future__ import annotations

import re
from typing import Optional

from noter.models import Note, now_ms

_HEADING_RE = re.compile(r"^#+\s*")
_MARKUP_RE = re.compile(r"[#*_~`>\-\[\]()]")


def display_title(note: Note) -> str:
    """Explicit title, else the first content line without heading markers."""
    if note.title.strip():
        return note.title.strip()
    first = note.content.split("\n", 1)[0].strip()
    return _HEADING_RE.sub("", first) or "Untitled"


def preview(note: Note) -> str:
    """Second non-empty line of the body with markdown markup removed."""
    lines = [line for line in note.content.split("\n") if line.strip()]
    second = lines[1].strip() if len(lines) > 1 else ""
    return _MARKUP_RE.sub("", second).strip() or "No content"


def word_count(text: str) -> int:
    return len(text.split())


def note_word_count(note: Note) -> int:
    """Words in the title, body and every block."""
    parts = [note.title, note.content, *(b.content for b in note.blocks)]
    return sum(word_count(p) for p in parts)


def relative_time(timestamp_ms: int, now: Optional[int] = None) -> str:
    """Human-friendly age: "just now", "2m ago", "1h ago", "3d ago", "2mo ago"."""
    now = now_ms() if now is None else now
    seconds = max(0, now - timestamp_ms) // 1000
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 30:
        return f"{days}d ago"
    return f"{days // 30}mo ago"


def matches(note: Note, query: str) -> bool:
    """Case-insensitive substring match on title, body and block text."""
    q = query.strip().lower()
    if not q:
        return True
    haystack = [note.title, note.content, *(b.content for b in note.blocks)]
    return any(q in part.lower() for part in haystack)
