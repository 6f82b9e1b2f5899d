"""Double-buffered cell screen with differential flushing.

``LogicalScreen`` owns two ``CellGrid`` instances: *logical* (what the
application wants shown) and *physical* (what was last pushed to the
device).  ``flush()`` walks the grids, hands every dirty cell to the
``_draw_cell`` hook exactly once, then copies it into the physical grid.

Subclasses bind the hooks to a device: ``ECMA48Screen`` writes escape
sequences, ``PixelScreen`` blits cached glyph images.  The base class
draws nowhere, which makes it the headless screen.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Protocol

import grapheme

from pi.screen.cell import Cell, CellAttributes, Color
from pi.screen.grid import CellGrid

logger = logging.getLogger(__name__)

__all__ = [
    "BlinkClock",
    "CursorStyle",
    "LogicalScreen",
    "Region",
    "Screen",
]

# ---------------------------------------------------------------------------
# Box drawing
# ---------------------------------------------------------------------------

# (top-left, top-right, bottom-left, bottom-right, horizontal, vertical)
_BORDERS: dict[int, tuple[str, str, str, str, str, str]] = {
    1: ("┌", "┐", "└", "┘", "─", "│"),
    2: ("╔", "╗", "╚", "╝", "═", "║"),
    3: ("╒", "╕", "╘", "╛", "═", "│"),
}

# ---------------------------------------------------------------------------
# Small value types
# ---------------------------------------------------------------------------


class CursorStyle(Enum):
    UNDERLINE = "underline"
    BLOCK = "block"
    OUTLINE = "outline"

    @classmethod
    def parse(cls, value: str | CursorStyle) -> CursorStyle:
        if isinstance(value, CursorStyle):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid cursor style: {value!r}") from None


@dataclass(frozen=True)
class Region:
    """A rectangle of cells; ``right`` and ``bottom`` are exclusive."""

    left: int
    top: int
    right: int
    bottom: int

    def clamp(self, width: int, height: int) -> Region:
        return Region(
            max(0, self.left),
            max(0, self.top),
            min(width, self.right),
            min(height, self.bottom),
        )

    def contains(self, x: int, y: int) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom


class BlinkClock:
    """Shared blink phase, flipped when the interval has elapsed.

    Every screen ticks its clock once per flush.  Screens that share one
    ``BlinkClock`` blink in phase with each other; by default each screen
    gets its own.
    """

    def __init__(
        self,
        interval_ms: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval_ms = interval_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._last_flip = clock()
        self._visible = True

    @property
    def visible(self) -> bool:
        return self._visible

    def tick(self) -> bool:
        """Advance the phase if due and return whether blinkers are visible."""
        with self._lock:
            if self.interval_ms <= 0:
                self._visible = True
                return True
            now = self._clock()
            if (now - self._last_flip) * 1000.0 >= self.interval_ms:
                self._last_flip = now
                self._visible = not self._visible
            return self._visible

    def reset(self) -> None:
        """Restart the interval in the visible phase."""
        with self._lock:
            self._last_flip = self._clock()
            self._visible = True


# ---------------------------------------------------------------------------
# Screen protocol
# ---------------------------------------------------------------------------


class Screen(Protocol):
    """Drawing surface exposed to the widget layer."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def cursor_visible(self) -> bool: ...

    @property
    def cursor_x(self) -> int: ...

    @property
    def cursor_y(self) -> int: ...

    def put_cell(self, x: int, y: int, cell: Cell, clip: bool = True) -> None: ...

    def get_cell(self, x: int, y: int) -> Cell: ...

    def get_attr(self, x: int, y: int) -> CellAttributes: ...

    def put_attr(
        self, x: int, y: int, attr: CellAttributes, clip: bool = True
    ) -> None: ...

    def put_char(
        self, x: int, y: int, ch: str, attr: CellAttributes | None = None
    ) -> None: ...

    def put_string(
        self, x: int, y: int, text: str, attr: CellAttributes | None = None
    ) -> None: ...

    def put_all(self, ch: str, attr: CellAttributes) -> None: ...

    def h_line(
        self, x: int, y: int, n: int, ch: str, attr: CellAttributes
    ) -> None: ...

    def v_line(
        self, x: int, y: int, n: int, ch: str, attr: CellAttributes
    ) -> None: ...

    def draw_box(
        self,
        left: int,
        top: int,
        right: int,
        bottom: int,
        border: CellAttributes,
        background: CellAttributes,
        border_type: int = 1,
        shadow: bool = False,
    ) -> None: ...

    def set_offset(self, x: int, y: int) -> None: ...

    def set_clip(self, left: int, top: int, right: int, bottom: int) -> None: ...

    def reset_clipping(self) -> None: ...

    def set_cursor(self, x: int, y: int, visible: bool = True) -> None: ...

    def hide_cursor(self) -> None: ...

    def resize(self, width: int, height: int) -> None: ...

    def set_title(self, title: str) -> None: ...

    def reset(self) -> None: ...

    def clear(self) -> None: ...

    def is_dirty(self) -> bool: ...

    def invalidate(self) -> None: ...

    def flush(self, region: Region | None = None) -> int: ...


# ---------------------------------------------------------------------------
# LogicalScreen
# ---------------------------------------------------------------------------


class LogicalScreen:
    """Logical/physical grid pair plus the diff-and-flush algorithm.

    All grid access happens under one re-entrant lock (:attr:`lock`), so
    the application thread can paint while a render thread flushes.
    """

    #: Re-evaluate blinking cells on every flush (time driven, not content).
    redraw_blinking: bool = True
    #: Redraw the cell under a visible cursor on every flush.
    redraw_cursor_cell: bool = True

    def __init__(
        self,
        width: int = 80,
        height: int = 24,
        *,
        blink_clock: BlinkClock | None = None,
        cursor_style: CursorStyle | str = CursorStyle.UNDERLINE,
    ) -> None:
        self._lock = threading.RLock()
        self.logical = CellGrid(width, height)
        self.physical = CellGrid(width, height)
        self.blink_clock = blink_clock if blink_clock is not None else BlinkClock()
        self.cursor_style = CursorStyle.parse(cursor_style)

        self._offset_x = 0
        self._offset_y = 0
        self._clip_left = 0
        self._clip_top = 0
        self._clip_right = width
        self._clip_bottom = height

        # Cells whose physical copy is known stale without differing.
        self._forced: set[tuple[int, int]] = set()

        #: Force every cell to be redrawn on the next flush.
        self.really_cleared = True

        self.flush_count = 0
        self.last_flush_drawn = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def width(self) -> int:
        return self.logical.width

    @property
    def height(self) -> int:
        return self.logical.height

    @property
    def cursor_visible(self) -> bool:
        return self.logical.cursor_visible

    @property
    def cursor_x(self) -> int:
        return self.logical.cursor_x

    @property
    def cursor_y(self) -> int:
        return self.logical.cursor_y

    @property
    def title(self) -> str:
        return self.logical.title

    @property
    def clip_left(self) -> int:
        return self._clip_left

    @property
    def clip_top(self) -> int:
        return self._clip_top

    @property
    def clip_right(self) -> int:
        return self._clip_right

    @property
    def clip_bottom(self) -> int:
        return self._clip_bottom

    # ------------------------------------------------------------------
    # Offset and clipping
    # ------------------------------------------------------------------

    def set_offset(self, x: int, y: int) -> None:
        self._offset_x = x
        self._offset_y = y

    def set_clip(self, left: int, top: int, right: int, bottom: int) -> None:
        self._clip_left = left
        self._clip_top = top
        self._clip_right = right
        self._clip_bottom = bottom

    def reset_clipping(self) -> None:
        self._offset_x = 0
        self._offset_y = 0
        self._clip_left = 0
        self._clip_top = 0
        self._clip_right = self.width
        self._clip_bottom = self.height

    def _translate(self, x: int, y: int, clip: bool) -> tuple[int, int] | None:
        """Apply clipping and offset; ``None`` means the write is dropped."""
        if not clip:
            return x, y
        if (
            x < self._clip_left
            or x >= self._clip_right
            or y < self._clip_top
            or y >= self._clip_bottom
        ):
            return None
        return x + self._offset_x, y + self._offset_y

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_cell(self, x: int, y: int) -> Cell:
        """Return a copy of the logical cell, or a blank cell off-grid."""
        with self._lock:
            cell = self.logical.get(x, y)
            return cell.copy() if cell is not None else Cell()

    def get_attr(self, x: int, y: int) -> CellAttributes:
        with self._lock:
            cell = self.logical.get(x, y)
            if cell is None:
                return CellAttributes()
            return cell.copy_attributes()

    def is_dirty(self) -> bool:
        """Return ``True`` if the next flush would draw anything."""
        with self._lock:
            if self.really_cleared or self._forced:
                return True
            if (
                self.redraw_cursor_cell
                and self.logical.cursor_visible
                and self.logical.contains(self.logical.cursor_x, self.logical.cursor_y)
            ):
                return True
            for lrow, prow in zip(self.logical.rows(), self.physical.rows()):
                for lcell, pcell in zip(lrow, prow):
                    if lcell != pcell:
                        return True
                    if lcell.blink and self.redraw_blinking:
                        return True
            return False

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _touch(self, x: int, y: int) -> None:
        # Painting under a visible cursor must repaint the cursor too.
        if (
            self.logical.cursor_visible
            and x == self.logical.cursor_x
            and y == self.logical.cursor_y
        ):
            self._forced.add((x, y))

    def put_cell(self, x: int, y: int, cell: Cell, clip: bool = True) -> None:
        with self._lock:
            pos = self._translate(x, y, clip)
            if pos is None:
                return
            if self.logical.put(pos[0], pos[1], cell):
                self._touch(*pos)

    def put_attr(
        self, x: int, y: int, attr: CellAttributes, clip: bool = True
    ) -> None:
        with self._lock:
            pos = self._translate(x, y, clip)
            if pos is None:
                return
            cell = self.logical.get(*pos)
            if cell is None:
                return
            cell.set_attr(attr)
            self._touch(*pos)

    def put_char(
        self, x: int, y: int, ch: str, attr: CellAttributes | None = None
    ) -> None:
        """Write one character, keeping the existing attributes if *attr* is None."""
        with self._lock:
            pos = self._translate(x, y, True)
            if pos is None:
                return
            cell = self.logical.get(*pos)
            if cell is None:
                return
            cell.char = ch
            if attr is not None:
                cell.set_attr(attr)
            self._touch(*pos)

    def put_string(
        self, x: int, y: int, text: str, attr: CellAttributes | None = None
    ) -> None:
        """Write *text* one grapheme per cell, stopping at the right edge."""
        with self._lock:
            i = x
            for g in grapheme.graphemes(text):
                self.put_char(i, y, g, attr)
                i += 1
                if i >= self.width:
                    break

    def put_all(self, ch: str, attr: CellAttributes) -> None:
        with self._lock:
            for y in range(self.height):
                for x in range(self.width):
                    self.put_char(x, y, ch, attr)

    def h_line(self, x: int, y: int, n: int, ch: str, attr: CellAttributes) -> None:
        with self._lock:
            for i in range(x, x + n):
                self.put_char(i, y, ch, attr)

    def v_line(self, x: int, y: int, n: int, ch: str, attr: CellAttributes) -> None:
        with self._lock:
            for i in range(y, y + n):
                self.put_char(x, i, ch, attr)

    def draw_box(
        self,
        left: int,
        top: int,
        right: int,
        bottom: int,
        border: CellAttributes,
        background: CellAttributes,
        border_type: int = 1,
        shadow: bool = False,
    ) -> None:
        """Draw a bordered box; *right* and *bottom* are exclusive."""
        try:
            tl, tr, bl, br, hside, vside = _BORDERS[border_type]
        except KeyError:
            raise ValueError(f"Invalid border type: {border_type}") from None

        box_width = right - left
        box_height = bottom - top

        with self._lock:
            self.put_char(left, top, tl, border)
            self.put_char(left + box_width - 1, top, tr, border)
            self.put_char(left, top + box_height - 1, bl, border)
            self.put_char(left + box_width - 1, top + box_height - 1, br, border)

            self.h_line(left + 1, top, box_width - 2, hside, border)
            self.v_line(left, top + 1, box_height - 2, vside, border)
            self.h_line(left + 1, top + box_height - 1, box_width - 2, hside, border)
            self.v_line(left + box_width - 1, top + 1, box_height - 2, vside, border)

            for i in range(1, box_height - 1):
                self.h_line(left + 1, top + i, box_width - 2, " ", background)

            if shadow:
                self.draw_box_shadow(left, top, right, bottom)

    def draw_box_shadow(self, left: int, top: int, right: int, bottom: int) -> None:
        """Darken the cells right of and below a box.

        Shadows ignore the clip rectangle but honour the drawing offset.
        """
        shadow = CellAttributes(
            fore_color=Color.BLACK, back_color=Color.BLACK, bold=True
        )
        box_width = right - left
        box_height = bottom - top
        with self._lock:
            saved = (self._clip_right, self._clip_bottom)
            self._clip_right = self.width
            self._clip_bottom = self.height
            try:
                for i in range(box_height):
                    self.put_attr(left + box_width, top + 1 + i, shadow)
                    self.put_attr(left + box_width + 1, top + 1 + i, shadow)
                for i in range(box_width):
                    self.put_attr(left + 2 + i, top + box_height, shadow)
            finally:
                self._clip_right, self._clip_bottom = saved

    def reset(self) -> None:
        """Blank the logical grid and reset clipping."""
        with self._lock:
            self.logical.reset()
            self.reset_clipping()

    def clear(self) -> None:
        self.reset()

    # ------------------------------------------------------------------
    # Cursor and title
    # ------------------------------------------------------------------

    def set_cursor(self, x: int, y: int, visible: bool = True) -> None:
        with self._lock:
            old = (self.logical.cursor_x, self.logical.cursor_y)
            if self.logical.cursor_visible and self.logical.contains(*old):
                self._forced.add(old)
            self.logical.cursor_x = x
            self.logical.cursor_y = y
            self.logical.cursor_visible = visible

    def put_cursor(self, visible: bool, x: int, y: int) -> None:
        self.set_cursor(x, y, visible)

    def hide_cursor(self) -> None:
        with self._lock:
            if self.logical.cursor_visible:
                pos = (self.logical.cursor_x, self.logical.cursor_y)
                if self.logical.contains(*pos):
                    self._forced.add(pos)
            self.logical.cursor_visible = False

    def set_title(self, title: str) -> None:
        with self._lock:
            self.logical.title = title

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Replace both grids; logical content is cropped, physical reset."""
        with self._lock:
            if width == self.width and height == self.height:
                return
            self.logical.resize(width, height)
            self.physical = CellGrid(width, height)
            self._forced.clear()
            self.reset_clipping()
            self.really_cleared = True
            logger.debug("Screen resized to %dx%d", width, height)

    def set_dimensions(self, width: int, height: int) -> None:
        self.resize(width, height)

    def invalidate(self) -> None:
        """Redraw everything on the next flush."""
        with self._lock:
            self.really_cleared = True

    def clear_physical(self) -> None:
        """Forget what the device shows; every differing cell is redrawn."""
        with self._lock:
            self.physical.reset()

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def dirty_cells(
        self, region: Region | None = None
    ) -> Iterator[tuple[int, int, Cell, Cell]]:
        """Yield ``(x, y, logical, physical)`` for each cell needing a redraw.

        The caller must hold :attr:`lock`.
        """
        bounds = (region or Region(0, 0, self.width, self.height)).clamp(
            self.width, self.height
        )
        cx, cy = self.logical.cursor_x, self.logical.cursor_y
        cursor_cell = self.redraw_cursor_cell and self.logical.cursor_visible
        for y in range(bounds.top, bounds.bottom):
            for x in range(bounds.left, bounds.right):
                lcell = self.logical.get(x, y)
                pcell = self.physical.get(x, y)
                if lcell is None or pcell is None:
                    continue
                if (
                    self.really_cleared
                    or lcell != pcell
                    or (lcell.blink and self.redraw_blinking)
                    or (x, y) in self._forced
                    or (cursor_cell and x == cx and y == cy)
                ):
                    yield x, y, lcell, pcell

    def flush(self, region: Region | None = None) -> int:
        """Draw every dirty cell, then the cursor.

        Returns the number of cells handed to the device.  A detached
        device turns this into a no-op.
        """
        if not self._is_attached():
            return 0

        blink_visible = self.blink_clock.tick()

        with self._lock:
            if not self._begin_flush(blink_visible):
                return 0
            drawn = 0
            for x, y, lcell, pcell in self.dirty_cells(region):
                self._draw_cell(x, y, lcell, blink_visible)
                # Physical tracks intended content, not visible pixels.
                pcell.set_to(lcell)
                drawn += 1

            if region is None:
                self._forced.clear()
                self.really_cleared = False
            else:
                bounds = region.clamp(self.width, self.height)
                self._forced = {p for p in self._forced if not bounds.contains(*p)}

            cx, cy = self.logical.cursor_x, self.logical.cursor_y
            cursor_shown = (
                self.logical.cursor_visible
                and self.logical.contains(cx, cy)
                and blink_visible
            )
            if cursor_shown:
                self._draw_cursor(cx, cy, self.logical.get(cx, cy))
            self._end_flush(cursor_shown)

            self.flush_count += 1
            self.last_flush_drawn = drawn
            return drawn

    # ------------------------------------------------------------------
    # Device hooks (no-ops for the headless screen)
    # ------------------------------------------------------------------

    def _is_attached(self) -> bool:
        return True

    def _begin_flush(self, blink_visible: bool) -> bool:
        """Prepare the device; returning ``False`` abandons the flush."""
        return True

    def _draw_cell(self, x: int, y: int, cell: Cell, blink_visible: bool) -> None:
        pass

    def _draw_cursor(self, x: int, y: int, cell: Cell | None) -> None:
        pass

    def _end_flush(self, cursor_shown: bool) -> None:
        pass
