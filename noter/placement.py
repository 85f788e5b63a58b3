"""Allocation of non-overlapping positions for new canvas blocks."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from noter.geometry import (
    GRID,
    ContainerMetrics,
    CoordinateSpace,
    Position,
    Rect,
    clamp,
    overlaps,
    snap_to_grid,
)
from noter.metrics import PLACEMENT_FALLBACKS
from noter.models import Block

logger = logging.getLogger(__name__)


class PlacementEngine:
    """Finds positions for new blocks within one coordinate space.

    The scan is deterministic: candidates are visited row by row from the
    space's padding origin and the first one clear of every existing block
    (by the space's margin) wins. When the bounded scan area is full the
    block goes directly below the lowest existing block.
    """

    def __init__(self, space: CoordinateSpace = GRID) -> None:
        self.space = space

    def find_free_position(
        self,
        blocks: Iterable[Block],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Position:
        """Return the first scan position where a new block overlaps nothing."""
        width = width or self.space.default_width
        height = height or self.space.default_height
        rects = [b.rect for b in blocks]

        for pos in self.space.candidates():
            candidate = Rect(pos.x, pos.y, width, height)
            if not any(overlaps(candidate, r, self.space.margin) for r in rects):
                return pos

        lowest = max((r.bottom for r in rects), default=0)
        PLACEMENT_FALLBACKS.labels(space=self.space.name).inc()
        logger.info(
            "Scan exhausted for %d blocks in %s space, placing below y=%s",
            len(rects),
            self.space.name,
            lowest,
        )
        return self.space.clamp_placement(self.space.padding_x, lowest + 1)

    def position_near(
        self,
        x: float,
        y: float,
        width: Optional[float] = None,
        height: Optional[float] = None,
        extent: Optional[Position] = None,
    ) -> Position:
        """Clamp a hint point into the placement range (and ``extent``, if known)."""
        pos = self.space.clamp_placement(self.space.normalize(x), self.space.normalize(y))
        if extent is None:
            return pos
        width = width or self.space.default_width
        height = height or self.space.default_height
        return Position(
            clamp(pos.x, 0, extent.x - width),
            clamp(pos.y, 0, extent.y - height),
        )

    def position_at_pointer(
        self,
        client_x: float,
        client_y: float,
        container: Optional[ContainerMetrics],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Optional[Position]:
        """Convert a double-click/double-tap location into a block origin.

        Returns None when the container has not been measured yet.
        """
        if container is None:
            return None

        if self.space.is_percent:
            # Percent canvases measure against the visible box, not the scrolled content.
            x = self.space.to_units(client_x - container.left, container.width)
            y = self.space.to_units(client_y - container.top, container.height)
            return self.position_near(x, y, width, height)

        local = container.to_content(client_x, client_y)
        x = snap_to_grid(local.x, self.space.unit)
        y = snap_to_grid(local.y, self.space.unit)
        return self.position_near(x, y, width, height, self.space.extent(container))
