"""Importing markdown and text files as new notes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from noter.models import Note
from noter.store import NoteStore

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".md", ".markdown", ".txt"}


@dataclass
class ImportResult:
    """Notes created by an import and messages for the files that failed."""

    notes: list[Note] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def import_files(store: NoteStore, paths: Iterable[Path]) -> ImportResult:
    """Create one markdown note per readable file.

    A file's first line becomes the note's display title through its
    content, so no explicit title is set. Failures never touch the store.
    """
    result = ImportResult()
    for path in paths:
        path = Path(path)
        if path.suffix.lower() not in SUPPORTED_SUFFIXES:
            result.errors.append(f"{path.name}: unsupported file type")
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Import of %s failed: %s", path, e)
            result.errors.append(f"{path.name}: {e}")
            continue
        result.notes.append(store.import_text(text))
    logger.info("Imported %d files, %d failed", len(result.notes), len(result.errors))
    return result
