"""Cell values: colours, text attributes, and one character position.

A ``Cell`` is the full visual state of one grid position.  Cells are
mutable so that drawing code can build them up incrementally, but anything
that keeps a cell around (the physical grid, glyph cache keys) stores a
``copy()`` of it.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import IntEnum

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

# DOS-style palette used by pixel surfaces: (normal, bold) RGB triples.
_PALETTE: dict[int, tuple[tuple[int, int, int], tuple[int, int, int]]] = {
    0: ((0x00, 0x00, 0x00), (0x54, 0x54, 0x54)),
    1: ((0xA8, 0x00, 0x00), (0xFC, 0x54, 0x54)),
    2: ((0x00, 0xA8, 0x00), (0x54, 0xFC, 0x54)),
    3: ((0xA8, 0x54, 0x00), (0xFC, 0xFC, 0x54)),
    4: ((0x00, 0x00, 0xA8), (0x54, 0x54, 0xFC)),
    5: ((0xA8, 0x00, 0xA8), (0xFC, 0x54, 0xFC)),
    6: ((0x00, 0xA8, 0xA8), (0x54, 0xFC, 0xFC)),
    7: ((0xA8, 0xA8, 0xA8), (0xFC, 0xFC, 0xFC)),
}


class Color(IntEnum):
    """The eight ECMA-48 SGR colours."""

    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    WHITE = 7

    @classmethod
    def from_name(cls, name: str) -> Color:
        """Look up a colour by name; unknown names map to ``WHITE``."""
        key = name.strip().lower()
        if key == "brown":
            return cls.YELLOW
        for color in cls:
            if color.name.lower() == key:
                return color
        return cls.WHITE

    def invert(self) -> Color:
        return _INVERSE[self]

    def to_rgb(self, bold: bool = False) -> tuple[int, int, int]:
        """Return the palette RGB triple, brightened when *bold*."""
        normal, bright = _PALETTE[int(self)]
        return bright if bold else normal


_INVERSE = {
    Color.BLACK: Color.WHITE,
    Color.WHITE: Color.BLACK,
    Color.RED: Color.CYAN,
    Color.CYAN: Color.RED,
    Color.GREEN: Color.MAGENTA,
    Color.MAGENTA: Color.GREEN,
    Color.BLUE: Color.YELLOW,
    Color.YELLOW: Color.BLUE,
}


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


@dataclass(eq=True, unsafe_hash=True)
class CellAttributes:
    """Colours and style flags shared by every cell."""

    fore_color: Color = Color.WHITE
    back_color: Color = Color.BLACK
    bold: bool = False
    blink: bool = False
    reverse: bool = False
    underline: bool = False
    invisible: bool = False
    protect: bool = False

    def reset(self) -> None:
        """Restore white-on-black with no flags."""
        CellAttributes.set_to(self, CellAttributes())

    def set_to(self, other: CellAttributes) -> None:
        """Copy every attribute field of *other* into this object."""
        for f in fields(CellAttributes):
            setattr(self, f.name, getattr(other, f.name))

    def copy_attributes(self) -> CellAttributes:
        attrs = CellAttributes()
        attrs.set_to(self)
        return attrs


# ---------------------------------------------------------------------------
# Cell
# ---------------------------------------------------------------------------


@dataclass(eq=True, unsafe_hash=True)
class Cell(CellAttributes):
    """One character position: a grapheme cluster plus its attributes.

    Equality and hashing are structural, so two cells compare equal
    exactly when every field matches.  Do not mutate a cell after using it
    as a dictionary key; take a :meth:`copy` first.
    """

    char: str = " "

    @classmethod
    def of(cls, char: str, attrs: CellAttributes | None = None) -> Cell:
        cell = cls(char=char)
        if attrs is not None:
            CellAttributes.set_to(cell, attrs)
        return cell

    def reset(self) -> None:
        super().reset()
        self.char = " "

    def set_to(self, other: CellAttributes) -> None:
        super().set_to(other)
        if isinstance(other, Cell):
            self.char = other.char

    def set_attr(self, attrs: CellAttributes) -> None:
        """Copy only the attributes of *attrs*, keeping the character."""
        CellAttributes.set_to(self, attrs)

    def copy(self) -> Cell:
        cell = Cell()
        cell.set_to(self)
        return cell

    def is_blank(self) -> bool:
        return self == _BLANK

    def resolved(self) -> Cell:
        """Return a copy with reverse video applied to the colours."""
        cell = self.copy()
        if cell.reverse:
            cell.fore_color, cell.back_color = cell.back_color, cell.fore_color
            cell.reverse = False
        return cell

    def __str__(self) -> str:
        return (
            f"fore: {self.fore_color.name} back: {self.back_color.name} "
            f"bold: {self.bold} blink: {self.blink} ch {self.char}"
        )


_BLANK = Cell()
