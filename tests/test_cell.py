"""Tests for pi.screen.cell."""

from __future__ import annotations

from pi.screen.cell import Cell, CellAttributes, Color


class TestColor:
    def test_from_name(self) -> None:
        assert Color.from_name("red") is Color.RED
        assert Color.from_name(" Blue ") is Color.BLUE
        assert Color.from_name("brown") is Color.YELLOW

    def test_unknown_name_is_white(self) -> None:
        assert Color.from_name("chartreuse") is Color.WHITE

    def test_invert_pairs(self) -> None:
        assert Color.BLACK.invert() is Color.WHITE
        assert Color.RED.invert() is Color.CYAN
        assert Color.GREEN.invert() is Color.MAGENTA
        assert Color.BLUE.invert() is Color.YELLOW
        for color in Color:
            assert color.invert().invert() is color

    def test_palette(self) -> None:
        assert Color.RED.to_rgb() == (0xA8, 0x00, 0x00)
        assert Color.RED.to_rgb(bold=True) == (0xFC, 0x54, 0x54)
        assert Color.BLACK.to_rgb(bold=True) == (0x54, 0x54, 0x54)


class TestCellEquality:
    def test_structural_equality(self) -> None:
        a = Cell.of("A", CellAttributes(fore_color=Color.RED))
        b = Cell.of("A", CellAttributes(fore_color=Color.RED))
        assert a == b
        assert hash(a) == hash(b)

    def test_any_field_difference_breaks_equality(self) -> None:
        base = Cell.of("A")
        for change in (
            {"char": "B"},
            {"fore_color": Color.GREEN},
            {"back_color": Color.BLUE},
            {"bold": True},
            {"blink": True},
            {"reverse": True},
            {"underline": True},
            {"invisible": True},
        ):
            other = base.copy()
            for name, value in change.items():
                setattr(other, name, value)
            assert other != base, change

    def test_default_is_blank(self) -> None:
        assert Cell().is_blank()
        assert not Cell.of("x").is_blank()


class TestCellCopying:
    def test_copy_is_independent(self) -> None:
        a = Cell.of("A")
        b = a.copy()
        b.char = "B"
        b.bold = True
        assert a.char == "A"
        assert not a.bold

    def test_set_to_copies_char_from_cell(self) -> None:
        a = Cell.of("A", CellAttributes(bold=True))
        b = Cell()
        b.set_to(a)
        assert b == a

    def test_set_to_attributes_keeps_char(self) -> None:
        cell = Cell.of("Q")
        cell.set_to(CellAttributes(fore_color=Color.CYAN))
        assert cell.char == "Q"
        assert cell.fore_color is Color.CYAN

    def test_set_attr_keeps_char(self) -> None:
        cell = Cell.of("Z")
        cell.set_attr(CellAttributes(underline=True))
        assert cell.char == "Z"
        assert cell.underline

    def test_reset(self) -> None:
        cell = Cell.of("A", CellAttributes(bold=True, back_color=Color.RED))
        cell.reset()
        assert cell.is_blank()

    def test_copy_attributes_is_plain_attributes(self) -> None:
        attrs = Cell.of("A", CellAttributes(blink=True)).copy_attributes()
        assert type(attrs) is CellAttributes
        assert attrs.blink


class TestResolved:
    def test_reverse_swaps_colours(self) -> None:
        cell = Cell.of(
            "A",
            CellAttributes(fore_color=Color.RED, back_color=Color.BLUE, reverse=True),
        )
        resolved = cell.resolved()
        assert resolved.fore_color is Color.BLUE
        assert resolved.back_color is Color.RED
        assert not resolved.reverse
        # Original untouched.
        assert cell.reverse
        assert cell.fore_color is Color.RED

    def test_reverse_matches_swapped_plain_cell(self) -> None:
        reversed_cell = Cell.of("A", CellAttributes(reverse=True))
        plain = Cell.of("A", CellAttributes(fore_color=Color.BLACK, back_color=Color.WHITE))
        assert reversed_cell.resolved() == plain

    def test_non_reverse_is_copy(self) -> None:
        cell = Cell.of("A")
        resolved = cell.resolved()
        assert resolved == cell
        assert resolved is not cell
