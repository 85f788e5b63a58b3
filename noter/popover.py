"""Closing popovers when a pointer press lands outside them."""

from __future__ import annotations

from typing import Callable, Optional

from noter.geometry import Rect


class Popover:
    """An open/closed flag paired with the region the popover occupies."""

    def __init__(
        self,
        name: str,
        region: Callable[[], Optional[Rect]],
        on_close: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.name = name
        self._region = region
        self._on_close = on_close
        self.is_open = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        if self.is_open:
            self.is_open = False
            if self._on_close is not None:
                self._on_close(self.name)

    def toggle(self) -> None:
        if self.is_open:
            self.close()
        else:
            self.open()

    def contains(self, x: float, y: float) -> Optional[bool]:
        """None when the region has not been laid out yet."""
        region = self._region()
        if region is None:
            return None
        return region.contains(x, y)


class PopoverDismissal:
    """One pointer-down listener shared by every registered popover."""

    def __init__(self) -> None:
        self._popovers: dict[str, Popover] = {}

    def register(self, popover: Popover) -> Popover:
        self._popovers[popover.name] = popover
        return popover

    def unregister(self, name: str) -> None:
        self._popovers.pop(name, None)

    def pointer_down(self, x: float, y: float) -> list[str]:
        """Close open popovers the press landed outside of. Returns their names."""
        closed = []
        for popover in list(self._popovers.values()):
            if popover.is_open and popover.contains(x, y) is False:
                popover.close()
                closed.append(popover.name)
        return closed
