"""Pure coordinate math for canvas blocks.

Nothing in this module holds state or has side effects. ``CoordinateSpace``
captures everything that differs between grid-unit canvases and
percentage-of-container canvases, so placement and dragging share a single
code path for both.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional

GRID_UNIT = 24  # pixels per grid unit


class Position(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom


def snap_to_grid(value: float, unit: float = GRID_UNIT) -> int:
    """Snap a pixel coordinate to the nearest grid line, in grid units.

    Halves round up, so ``snap_to_grid(12, 24) == 1``.
    """
    return math.floor(value / unit + 0.5)


def grid_to_px(units: float, unit: float = GRID_UNIT) -> float:
    """Convert grid units to pixels."""
    return units * unit


def overlaps(a: Rect, b: Rect, margin: float = 1) -> bool:
    """Return True unless the rectangles are at least ``margin`` apart on x or y."""
    return not (
        a.x + a.width + margin <= b.x
        or b.x + b.width + margin <= a.x
        or a.y + a.height + margin <= b.y
        or b.y + b.height + margin <= a.y
    )


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into ``[lo, hi]``; ``lo`` wins when the range is empty."""
    return max(lo, min(hi, value))


def _axis(start: float, stop: float, step: float) -> list[float]:
    count = max(0, math.ceil((stop - start) / step))
    return [start + i * step for i in range(count)]


@dataclass(frozen=True)
class ContainerMetrics:
    """Measured geometry of a canvas container, in pixels.

    ``left``/``top`` are the container's viewport origin; the scroll values
    describe how far its content is scrolled and how large that content is.
    """

    left: float
    top: float
    width: float
    height: float
    scroll_left: float = 0
    scroll_top: float = 0
    scroll_width: Optional[float] = None
    scroll_height: Optional[float] = None

    @property
    def content_width(self) -> float:
        return self.scroll_width if self.scroll_width is not None else self.width

    @property
    def content_height(self) -> float:
        return self.scroll_height if self.scroll_height is not None else self.height

    def to_content(self, client_x: float, client_y: float) -> Position:
        """Map a viewport point into the container's scrolled content."""
        return Position(
            client_x - self.left + self.scroll_left,
            client_y - self.top + self.scroll_top,
        )


@dataclass(frozen=True)
class CoordinateSpace:
    """Unit system of one canvas variant.

    ``unit`` is pixels per unit for grid canvases; ``None`` means positions
    are percentages of the container's content box.
    """

    name: str
    unit: Optional[float]
    padding_x: float
    padding_y: float
    step: float
    scan_max_x: float
    scan_max_y: float
    margin: float
    default_width: float
    default_height: float
    max_x: Optional[float] = None
    max_y: Optional[float] = None
    quantize: bool = False

    @property
    def is_percent(self) -> bool:
        return self.unit is None

    def candidates(self) -> Iterator[Position]:
        """Yield scan positions row by row, left to right."""
        cols = _axis(self.padding_x, self.scan_max_x, self.step)
        for y in _axis(self.padding_y, self.scan_max_y, self.step):
            for x in cols:
                yield Position(x, y)

    @property
    def capacity(self) -> int:
        """Number of candidate positions the scan visits."""
        return len(_axis(self.padding_x, self.scan_max_x, self.step)) * len(
            _axis(self.padding_y, self.scan_max_y, self.step)
        )

    def normalize(self, value: float) -> float:
        if self.quantize:
            return math.floor(value + 0.5)
        return value

    def to_units(self, px: float, extent_px: float) -> float:
        """Convert a pixel distance along an axis of ``extent_px`` pixels."""
        if self.unit is None:
            return px / extent_px * 100 if extent_px else 0.0
        return px / self.unit

    def to_px(self, value: float, extent_px: float) -> float:
        if self.unit is None:
            return value / 100 * extent_px
        return value * self.unit

    def extent(self, container: ContainerMetrics) -> Position:
        """Size of the container's content box in this space."""
        if self.unit is None:
            return Position(100.0, 100.0)
        return Position(
            float(math.floor(container.content_width / self.unit)),
            float(math.floor(container.content_height / self.unit)),
        )

    def clamp_placement(self, x: float, y: float) -> Position:
        """Keep a placed block's origin inside the space's placement range."""
        max_x = self.max_x if self.max_x is not None else math.inf
        max_y = self.max_y if self.max_y is not None else math.inf
        return Position(clamp(x, 0, max_x), clamp(y, 0, max_y))

    def clamp_origin(
        self, x: float, y: float, width: float, height: float, extent: Position
    ) -> Position:
        """Clamp a block origin so the block stays within ``extent``.

        The upper bound never drops below the placement range, so a block
        placed there does not jump on its first drag.
        """
        hi_x = extent.x - width
        hi_y = extent.y - height
        if self.max_x is not None:
            hi_x = max(hi_x, self.max_x)
        if self.max_y is not None:
            hi_y = max(hi_y, self.max_y)
        return Position(clamp(x, 0, hi_x), clamp(y, 0, hi_y))


GRID = CoordinateSpace(
    name="grid",
    unit=GRID_UNIT,
    padding_x=1,
    padding_y=8,  # room for the title and body above the blocks
    step=1,
    scan_max_x=40,
    scan_max_y=200,
    margin=1,
    default_width=10,
    default_height=4,
    quantize=True,
)

PERCENT = CoordinateSpace(
    name="percent",
    unit=None,
    padding_x=0,
    padding_y=0,
    step=5,
    scan_max_x=90,
    scan_max_y=95,
    margin=2,
    default_width=30,
    default_height=10,
    max_x=85,
    max_y=90,
)
