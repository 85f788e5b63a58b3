"""Durable key/value stores and the JSON codec for the note collection."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis
from pydantic import TypeAdapter, ValidationError

from noter.config import Settings
from noter.models import Note

logger = logging.getLogger(__name__)

_NOTES = TypeAdapter(list[Note])


class StoreWriteError(Exception):
    """A durable store could not accept a write."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def encode_notes(notes: list[Note]) -> str:
    """Serialise notes as a JSON array of camelCase records."""
    return _NOTES.dump_json(notes, by_alias=True).decode("utf-8")


def decode_notes(raw: Optional[str]) -> list[Note]:
    """Parse a stored note array, dropping records that fail validation.

    Missing, undecodable or non-array data yields an empty list.
    """
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.warning("Stored notes are not valid JSON: %s, starting fresh", exc)
        return []
    if not isinstance(parsed, list):
        logger.warning("Stored notes are not an array, starting fresh")
        return []

    notes: list[Note] = []
    seen: set[str] = set()
    for index, record in enumerate(parsed):
        try:
            note = Note.model_validate(record)
        except ValidationError as exc:
            logger.warning("Skipping invalid note record %d: %s", index, exc.errors()[:1])
            continue
        if note.id in seen:
            logger.warning("Skipping duplicate note id %s", note.id)
            continue
        seen.add(note.id)
        notes.append(note)
    return notes


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class MemoryStore:
    """Process-local store, used for tests and ephemeral sessions."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """Stores each key as ``<directory>/<key>.json``."""

    def __init__(self, directory: Path) -> None:
        self._dir = Path(directory)

    def path_for(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            logger.info("No storage file found at %s", path)
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None

    def set(self, key: str, value: str) -> None:
        """Write atomically so a crash never leaves a half-written file."""
        path = self.path_for(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, path)
        except OSError as e:
            raise StoreWriteError(f"Cannot write {path}: {e}") from e


class RedisStore:
    """Redis-backed store. Reads degrade to a miss when Redis is unavailable."""

    def __init__(self, redis_url: str, prefix: str = "noter:") -> None:
        self._redis_url = redis_url
        self._prefix = prefix
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(f"{self._prefix}{key}")
        except redis.RedisError as e:
            logger.warning("Redis get failed: %s", e)
            return None

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(f"{self._prefix}{key}", value)
        except redis.RedisError as e:
            raise StoreWriteError(f"Redis set failed: {e}") from e

    def close(self) -> None:
        self._client.close()


def build_store(settings: Settings) -> KeyValueStore:
    """Create the durable store selected by ``settings.storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        logger.info("Using Redis store at %s", settings.redis_url)
        return RedisStore(settings.redis_url)
    if backend == "file":
        logger.info("Using file store in %s", settings.storage_dir)
        return JsonFileStore(settings.storage_dir)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
