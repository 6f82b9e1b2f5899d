"""A rectangular array of cells with cursor and title state."""

from __future__ import annotations

from typing import Iterator

from pi.screen.cell import Cell


class CellGrid:
    """``width x height`` cells addressed as ``(x, y)``.

    Out-of-range reads return ``None`` and out-of-range writes are dropped:
    resizes race with drawing, and a stale coordinate must never crash the
    render loop.
    """

    def __init__(self, width: int = 80, height: int = 24) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self._rows: list[list[Cell]] = [
            [Cell() for _ in range(self.width)] for _ in range(self.height)
        ]
        self.cursor_x: int = 0
        self.cursor_y: int = 0
        self.cursor_visible: bool = False
        self.title: str = ""

    def __repr__(self) -> str:
        return f"CellGrid({self.width}x{self.height})"

    # -- access -------------------------------------------------------------

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Cell | None:
        """Return the live cell at ``(x, y)``, or ``None`` off-grid."""
        if not self.contains(x, y):
            return None
        return self._rows[y][x]

    def put(self, x: int, y: int, cell: Cell) -> bool:
        """Copy *cell* into ``(x, y)``.  Returns ``False`` if clipped."""
        if not self.contains(x, y):
            return False
        self._rows[y][x].set_to(cell)
        return True

    def rows(self) -> Iterator[list[Cell]]:
        yield from self._rows

    # -- bulk operations ----------------------------------------------------

    def reset(self) -> None:
        for row in self._rows:
            for cell in row:
                cell.reset()

    def resize(self, width: int, height: int) -> None:
        """Change dimensions, keeping whatever content still fits."""
        width = max(0, width)
        height = max(0, height)
        rows: list[list[Cell]] = []
        for y in range(height):
            row: list[Cell] = []
            for x in range(width):
                if x < self.width and y < self.height:
                    row.append(self._rows[y][x])
                else:
                    row.append(Cell())
            rows.append(row)
        self._rows = rows
        self.width = width
        self.height = height

    def copy_from(self, other: CellGrid) -> None:
        """Copy the overlapping cells of *other* into this grid."""
        for y in range(min(self.height, other.height)):
            src = other._rows[y]
            dst = self._rows[y]
            for x in range(min(self.width, other.width)):
                dst[x].set_to(src[x])

    def cells_equal(self, other: CellGrid) -> bool:
        if self.width != other.width or self.height != other.height:
            return False
        return all(a == b for a, b in zip(self._rows, other._rows))
