"""Pydantic models for notes and their canvas blocks."""

from __future__ import annotations

import time
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from noter.geometry import Rect


def new_id() -> str:
    """Return a fresh unique identifier."""
    return str(uuid4())


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class NoteColor(str, Enum):
    STONE = "stone"
    GREEN = "green"
    RED = "red"
    PINK = "pink"
    SAND = "sand"
    SKY = "sky"
    LAVENDER = "lavender"


class NoteMode(str, Enum):
    MARKDOWN = "markdown"
    CANVAS = "canvas"


class SaveStatus(str, Enum):
    """Indicator state shown next to the note while it persists."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"


class _Record(BaseModel):
    """Stored records use camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Block(_Record):
    """An independently positioned unit of content on a canvas."""

    id: str = Field(default_factory=new_id)
    x: float = Field(0, description="Left edge in the canvas coordinate space")
    y: float = Field(0, description="Top edge in the canvas coordinate space")
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    content: str = ""

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()


class Note(_Record):
    """A single note: plain markdown or a canvas of blocks."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    content: str = Field("", description="Markdown body")
    color: NoteColor = NoteColor.STONE
    mode: NoteMode = NoteMode.CANVAS
    blocks: list[Block] = Field(default_factory=list)
    pinned: bool = False
    created_at: int = Field(default_factory=now_ms, description="Epoch ms")
    updated_at: int = Field(default_factory=now_ms, description="Epoch ms")

    @model_validator(mode="after")
    def _updated_after_created(self) -> Note:
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt must not precede createdAt")
        return self

    def block(self, block_id: str) -> Block | None:
        """Return the block with the given id, if present."""
        for b in self.blocks:
            if b.id == block_id:
                return b
        return None


class NotePatch(BaseModel):
    """Partial update accepted by ``NoteStore.mutate``."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    content: str | None = None
    color: NoteColor | None = None
    mode: NoteMode | None = None
    pinned: bool | None = None
    blocks: list[Block] | None = None
