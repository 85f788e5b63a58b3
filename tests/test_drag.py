"""Unit tests for noter.drag — unified mouse/touch dragging."""

from __future__ import annotations

from typing import Optional

import pytest

from noter.drag import DragController, InputKind, PointerEvent, Region
from noter.geometry import GRID, PERCENT, ContainerMetrics, CoordinateSpace, Position
from noter.models import Block

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Harness:
    """A controller over a dict of blocks, applying moves like a canvas would."""

    def __init__(
        self,
        blocks: list[Block],
        container: Optional[ContainerMetrics],
        space: CoordinateSpace = GRID,
    ) -> None:
        self.blocks = {b.id: b for b in blocks}
        self.container = container
        self.moves: list[tuple[str, float, float]] = []
        self.controller = DragController(
            lambda: self.container, self.blocks.get, self._on_move, space
        )

    def _on_move(self, block_id: str, x: float, y: float) -> None:
        self.moves.append((block_id, x, y))
        block = self.blocks[block_id]
        self.blocks[block_id] = block.model_copy(update={"x": x, "y": y})


def mouse(x: float, y: float, region: Region = Region.HANDLE) -> PointerEvent:
    return PointerEvent(InputKind.MOUSE, x, y, region)


def touch(x: float, y: float, region: Region = Region.HANDLE) -> PointerEvent:
    return PointerEvent(InputKind.TOUCH, x, y, region)


@pytest.fixture()
def grid() -> Harness:
    """20x20-unit container holding one 10x4 block at (5, 5)."""
    block = Block(id="b1", x=5, y=5, width=10, height=4)
    other = Block(id="b2", x=1, y=12, width=10, height=4)
    container = ContainerMetrics(left=0, top=0, width=480, height=480)
    return Harness([block, other], container)


# ---------------------------------------------------------------------------
# Session start
# ---------------------------------------------------------------------------


class TestStart:
    def test_start_on_handle(self, grid: Harness):
        assert grid.controller.start("b1", mouse(130, 130)) is True
        session = grid.controller.session
        assert session is not None
        assert session.block_id == "b1"
        assert (session.offset_x, session.offset_y) == (10, 10)

    def test_start_in_text_area_is_not_a_drag(self, grid: Harness):
        assert grid.controller.start("b1", mouse(130, 130, Region.EDITOR)) is False
        assert grid.controller.session is None

    def test_start_without_container_is_ignored(self, grid: Harness):
        grid.container = None
        assert grid.controller.start("b1", mouse(130, 130)) is False

    def test_unknown_block_is_ignored(self, grid: Harness):
        assert grid.controller.start("missing", mouse(130, 130)) is False

    def test_only_one_session_at_a_time(self, grid: Harness):
        assert grid.controller.start("b1", mouse(130, 130))
        assert grid.controller.start("b2", touch(30, 300)) is False
        assert grid.controller.dragging_id == "b1"

    def test_offset_accounts_for_scroll(self):
        block = Block(id="b1", x=5, y=5, width=10, height=4)
        container = ContainerMetrics(
            left=0, top=0, width=480, height=480, scroll_top=48, scroll_height=960
        )
        h = Harness([block], container)
        h.controller.start("b1", mouse(130, 130 - 48))
        assert h.controller.session.offset_y == 10


# ---------------------------------------------------------------------------
# Moves
# ---------------------------------------------------------------------------


class TestMove:
    def test_move_follows_pointer(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        pos = grid.controller.move(mouse(130 + 72, 130))
        assert pos == Position(8, 5)
        assert grid.moves == [("b1", 8, 5)]

    def test_only_dragged_block_changes(self, grid: Harness):
        before = grid.blocks["b2"]
        grid.controller.start("b1", mouse(130, 130))
        grid.controller.move(mouse(300, 300))
        assert grid.blocks["b2"] == before
        assert all(m[0] == "b1" for m in grid.moves)

    def test_past_right_edge_stops_at_bound(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        pos = grid.controller.move(mouse(2000, 130))
        assert pos == Position(10, 5)
        assert pos.x + grid.blocks["b1"].width == 20

    def test_past_top_left_stops_at_zero(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        assert grid.controller.move(mouse(-500, -500)) == Position(0, 0)

    def test_every_position_within_bounds(self, grid: Harness):
        grid.controller.start("b1", touch(130, 130))
        path = [(0, 0), (900, 40), (480, 480), (-20, 600), (250, 250), (479, 1), (5000, -5000)]
        for x, y in path:
            pos = grid.controller.move(touch(x, y))
            assert 0 <= pos.x <= 20 - 10
            assert 0 <= pos.y <= 20 - 4

    def test_move_without_session_does_nothing(self, grid: Harness):
        assert grid.controller.move(mouse(10, 10)) is None
        assert grid.moves == []

    def test_move_from_other_input_family_ignored(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        assert grid.controller.move(touch(200, 200)) is None
        assert grid.moves == []

    def test_move_while_container_unmeasured_ignored(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        grid.container = None
        assert grid.controller.move(mouse(200, 200)) is None

    def test_scrolling_during_drag_moves_block(self):
        block = Block(id="b1", x=5, y=5, width=10, height=4)
        h = Harness(
            [block],
            ContainerMetrics(left=0, top=0, width=480, height=480, scroll_height=960),
        )
        h.controller.start("b1", mouse(130, 130))
        h.container = ContainerMetrics(
            left=0, top=0, width=480, height=480, scroll_top=48, scroll_height=960
        )
        assert h.controller.move(mouse(130, 130)) == Position(5, 7)

    def test_block_removed_mid_drag_ends_session(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        del grid.blocks["b1"]
        assert grid.controller.move(mouse(200, 200)) is None
        assert grid.controller.session is None


class TestTouch:
    def test_touch_move_prevents_default(self, grid: Harness):
        grid.controller.start("b1", touch(130, 130))
        event = touch(200, 200)
        grid.controller.move(event)
        assert event.default_prevented is True

    def test_touch_and_mouse_share_update_path(self, grid: Harness):
        grid.controller.start("b1", touch(130, 130))
        assert grid.controller.move(touch(130 + 72, 130)) == Position(8, 5)


# ---------------------------------------------------------------------------
# End
# ---------------------------------------------------------------------------


class TestEnd:
    def test_end_clears_session(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        grid.controller.move(mouse(202, 130))
        assert grid.controller.end(mouse(202, 130)) is True
        assert grid.controller.session is None
        assert grid.controller.move(mouse(400, 400)) is None
        assert grid.blocks["b1"].x == 8

    def test_end_from_other_family_ignored(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        assert grid.controller.end(touch(0, 0)) is False
        assert grid.controller.dragging_id == "b1"

    def test_new_drag_allowed_after_end(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        grid.controller.end(mouse(130, 130))
        assert grid.controller.start("b2", mouse(30, 300)) is True

    def test_cancel(self, grid: Harness):
        grid.controller.start("b1", mouse(130, 130))
        grid.controller.cancel()
        assert grid.controller.dragging_id is None


# ---------------------------------------------------------------------------
# Percent space
# ---------------------------------------------------------------------------


class TestPercentDrag:
    @pytest.fixture()
    def pct(self) -> Harness:
        block = Block(id="p1", x=10, y=10, width=30, height=10)
        return Harness([block], ContainerMetrics(left=0, top=0, width=400, height=200), PERCENT)

    def test_move_in_percent(self, pct: Harness):
        pct.controller.start("p1", mouse(45, 25))
        assert pct.controller.move(mouse(245, 125)) == Position(60, 60)

    def test_clamped_to_container(self, pct: Harness):
        pct.controller.start("p1", mouse(45, 25))
        assert pct.controller.move(mouse(400, 200)) == Position(85, 90)

    def test_block_at_placement_edge_does_not_jump(self):
        """The furthest slot placement can pick stays put when dragging starts."""
        block = Block(id="edge", x=85, y=90, width=30, height=10)
        h = Harness([block], ContainerMetrics(left=0, top=0, width=400, height=400), PERCENT)
        h.controller.start("edge", mouse(350, 370))
        assert h.controller.move(mouse(350, 370)) == pytest.approx((85, 90))
        assert h.controller.move(mouse(330, 370)) == pytest.approx((80, 90))
