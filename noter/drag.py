"""Pointer and touch dragging of canvas blocks.

A drag session turns a down → move* → up gesture into position writes for
exactly one block. Mouse and touch input share the same update path; the
session only answers to the input family that started it. Dragging clamps
to the container but never avoids other blocks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from noter.geometry import GRID, ContainerMetrics, CoordinateSpace, Position
from noter.models import Block

logger = logging.getLogger(__name__)


class InputKind(str, Enum):
    MOUSE = "mouse"
    TOUCH = "touch"


class Region(str, Enum):
    """Part of a block the pointer landed on."""

    HANDLE = "handle"
    BODY = "body"
    EDITOR = "editor"  # editable text; selecting text there is not a drag


@dataclass
class PointerEvent:
    """A normalised mouse or touch event in viewport coordinates."""

    kind: InputKind
    client_x: float
    client_y: float
    region: Region = Region.HANDLE
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass(frozen=True)
class DragSession:
    block_id: str
    kind: InputKind
    offset_x: float
    offset_y: float


ContainerSource = Callable[[], Optional[ContainerMetrics]]
BlockSource = Callable[[str], Optional[Block]]
MoveSink = Callable[[str, float, float], None]


class DragController:
    """Owns at most one drag session for a canvas container."""

    def __init__(
        self,
        container: ContainerSource,
        get_block: BlockSource,
        on_move: MoveSink,
        space: CoordinateSpace = GRID,
    ) -> None:
        self._container = container
        self._get_block = get_block
        self._on_move = on_move
        self.space = space
        self._session: Optional[DragSession] = None

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    @property
    def dragging_id(self) -> Optional[str]:
        return self._session.block_id if self._session else None

    def start(self, block_id: str, event: PointerEvent) -> bool:
        """Begin dragging ``block_id``. Returns False if the gesture is ignored."""
        if self._session is not None:
            logger.debug("Drag of %s ignored, %s is being dragged", block_id, self.dragging_id)
            return False
        if event.region is Region.EDITOR:
            return False
        container = self._container()
        if container is None:
            logger.debug("Drag of %s ignored, container not measured", block_id)
            return False
        block = self._get_block(block_id)
        if block is None:
            return False

        pointer = container.to_content(event.client_x, event.client_y)
        origin_x = self.space.to_px(block.x, container.content_width)
        origin_y = self.space.to_px(block.y, container.content_height)
        self._session = DragSession(
            block_id=block_id,
            kind=event.kind,
            offset_x=pointer.x - origin_x,
            offset_y=pointer.y - origin_y,
        )
        if event.kind is InputKind.MOUSE:
            event.prevent_default()
        return True

    def move(self, event: PointerEvent) -> Optional[Position]:
        """Reposition the dragged block under the pointer, clamped to the container."""
        session = self._session
        if session is None or event.kind is not session.kind:
            return None
        container = self._container()
        if container is None:
            return None
        block = self._get_block(session.block_id)
        if block is None:
            self._session = None
            return None

        if event.kind is InputKind.TOUCH:
            event.prevent_default()

        # Content coordinates already include the scroll offset at this moment.
        pointer = container.to_content(event.client_x, event.client_y)
        x = self.space.to_units(pointer.x - session.offset_x, container.content_width)
        y = self.space.to_units(pointer.y - session.offset_y, container.content_height)
        pos = self.space.clamp_origin(
            self.space.normalize(x),
            self.space.normalize(y),
            block.width,
            block.height,
            self.space.extent(container),
        )
        self._on_move(session.block_id, pos.x, pos.y)
        return pos

    def end(self, event: PointerEvent) -> bool:
        """Finish the session started by the same input family."""
        if self._session is None or event.kind is not self._session.kind:
            return False
        logger.debug("Drag of %s ended", self._session.block_id)
        self._session = None
        return True

    def cancel(self) -> None:
        self._session = None
