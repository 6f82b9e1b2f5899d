"""Tests for pi.screen.glyphs: font selection and the glyph image cache."""

from __future__ import annotations

from pi.screen.cell import Cell, CellAttributes, Color
from pi.screen.glyphs import (
    FontChain,
    FontRange,
    GlyphCache,
    GlyphCacheSet,
    PillowRasterizer,
    classify_codepoint,
)
from pi.screen.pixel import ImageSurface, PixelScreen

from .fakes import RecordingRasterizer

RED_ON_BLACK = CellAttributes(fore_color=Color.RED, back_color=Color.BLACK)


def colors(image) -> set[tuple[int, int, int]]:
    return {color for _, color in image.getcolors(image.width * image.height)}


# ---------------------------------------------------------------------------
# Cache behaviour
# ---------------------------------------------------------------------------


class TestGlyphCache:
    def test_same_cell_returns_same_image(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        first = cache.get_image(Cell.of("A", RED_ON_BLACK))
        second = cache.get_image(Cell.of("A", RED_ON_BLACK))
        assert first is second
        assert cache.misses == 1
        assert font.calls == [("A", 8, 16)]

    def test_key_is_copied_on_insert(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        cell = Cell.of("A")
        image = cache.get_image(cell)
        cell.char = "B"
        cell.bold = True
        assert cache.get_image(Cell.of("A")) is image
        assert cache.misses == 1

    def test_reverse_video_shares_image(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        reversed_cell = Cell.of("A", CellAttributes(reverse=True))
        swapped = Cell.of(
            "A", CellAttributes(fore_color=Color.BLACK, back_color=Color.WHITE)
        )
        assert cache.get_image(reversed_cell) is cache.get_image(swapped)
        assert len(font.calls) == 1

    def test_distinct_attributes_distinct_images(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        plain = cache.get_image(Cell.of("A"))
        bold = cache.get_image(Cell.of("A", CellAttributes(bold=True)))
        assert plain is not bold
        assert len(cache) == 2

    def test_size_is_part_of_key(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        small = cache.get_image(Cell.of("A"))
        large = cache.get_image(Cell.of("A"), 16, 32)
        assert small is not large
        assert large.size == (16, 32)
        assert font.calls == [("A", 8, 16), ("A", 16, 32)]

    def test_cell_size_override(self) -> None:
        cache = GlyphCache(RecordingRasterizer(cell=(8, 16)), cell_width=10, cell_height=20)
        assert (cache.cell_width, cache.cell_height) == (10, 20)
        assert cache.get_image(Cell.of("A")).size == (10, 20)

    def test_blank_cells_skip_rasterizer(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        image = cache.get_image(Cell())
        assert font.calls == []
        assert colors(image) == {Color.BLACK.to_rgb()}

    def test_reset_drops_images(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        cache.get_image(Cell.of("A"))
        cache.reset()
        assert len(cache) == 0
        cache.get_image(Cell.of("A"))
        assert len(font.calls) == 2

    def test_reset_with_new_font_remeasures(self) -> None:
        cache = GlyphCache(RecordingRasterizer(cell=(8, 16)))
        cache.reset(RecordingRasterizer(cell=(12, 24)))
        assert (cache.cell_width, cache.cell_height) == (12, 24)


class TestBlinkImages:
    def test_blinking_cell_has_two_images(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        cell = Cell.of("A", CellAttributes(fore_color=Color.RED, blink=True))
        visible = cache.get_image(cell, blink_visible=True)
        hidden = cache.get_image(cell, blink_visible=False)
        assert visible is not hidden
        assert cache.visible_count == 1
        assert cache.hidden_count == 1
        assert colors(hidden) == {Color.BLACK.to_rgb()}
        assert Color.RED.to_rgb() in colors(visible)

    def test_each_phase_cached(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        cell = Cell.of("A", CellAttributes(blink=True))
        for _ in range(3):
            cache.get_image(cell, blink_visible=True)
            cache.get_image(cell, blink_visible=False)
        assert cache.misses == 2
        # The hidden phase is background only.
        assert len(font.calls) == 1

    def test_non_blinking_ignores_phase(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        cell = Cell.of("A")
        assert cache.get_image(cell, blink_visible=False) is cache.get_image(cell)
        assert cache.hidden_count == 0


class TestRendering:
    def test_foreground_and_background(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        image = cache.get_image(Cell.of("A", CellAttributes(fore_color=Color.RED, back_color=Color.BLUE)))
        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == Color.RED.to_rgb()
        assert image.getpixel((0, 15)) == Color.BLUE.to_rgb()

    def test_bold_uses_bright_foreground(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        image = cache.get_image(Cell.of("A", CellAttributes(fore_color=Color.RED, bold=True)))
        assert image.getpixel((0, 0)) == Color.RED.to_rgb(bold=True)

    def test_underline_fills_bottom_rows(self) -> None:
        cache = GlyphCache(RecordingRasterizer())
        image = cache.get_image(Cell.of(" ", CellAttributes(underline=True)))
        white = Color.WHITE.to_rgb()
        assert image.getpixel((3, 15)) == white
        assert image.getpixel((3, 14)) == white
        assert image.getpixel((3, 13)) == Color.BLACK.to_rgb()

    def test_invisible_is_background_only(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        image = cache.get_image(Cell.of("A", CellAttributes(invisible=True)))
        assert colors(image) == {Color.BLACK.to_rgb()}
        assert font.calls == []


# ---------------------------------------------------------------------------
# Font selection
# ---------------------------------------------------------------------------


class TestClassify:
    def test_ranges(self) -> None:
        assert classify_codepoint("A") is FontRange.MONO
        assert classify_codepoint("中") is FontRange.CJK
        assert classify_codepoint("한") is FontRange.CJK
        assert classify_codepoint("カ") is FontRange.CJK
        assert classify_codepoint("\U0001f600") is FontRange.EMOJI
        assert classify_codepoint("☀") is FontRange.EMOJI
        assert classify_codepoint("") is FontRange.MONO


def ascii_only(char: str) -> bool:
    return all(ord(c) < 128 for c in char)


class TestFontChain:
    def test_primary_first(self) -> None:
        primary = RecordingRasterizer("mono")
        chain = FontChain(primary, cjk=RecordingRasterizer("cjk"))
        assert chain.select("中") is primary

    def test_ranged_fallbacks(self) -> None:
        primary = RecordingRasterizer("mono", displays=ascii_only)
        cjk = RecordingRasterizer("cjk")
        emoji = RecordingRasterizer("emoji")
        last = RecordingRasterizer("last")
        chain = FontChain(primary, cjk=cjk, emoji=emoji, fallback=last)
        assert chain.select("A") is primary
        assert chain.select("中") is cjk
        assert chain.select("\U0001f600") is emoji
        assert chain.select("Ω") is last

    def test_ranged_font_must_display(self) -> None:
        primary = RecordingRasterizer("mono", displays=ascii_only)
        cjk = RecordingRasterizer("cjk", displays=lambda ch: False)
        last = RecordingRasterizer("last")
        chain = FontChain(primary, cjk=cjk, fallback=last)
        assert chain.select("中") is last

    def test_without_fallback_uses_primary(self) -> None:
        primary = RecordingRasterizer("mono", displays=ascii_only)
        assert FontChain(primary).select("Ω") is primary

    def test_cache_renders_with_selected_font(self) -> None:
        primary = RecordingRasterizer("mono", displays=ascii_only)
        cjk = RecordingRasterizer("cjk")
        cache = GlyphCache(FontChain(primary, cjk=cjk))
        cache.get_image(Cell.of("中"))
        cache.get_image(Cell.of("A"))
        assert [c[0] for c in cjk.calls] == ["中"]
        assert [c[0] for c in primary.calls] == ["A"]


class TestGlyphCacheSet:
    def test_keyed_by_font_and_size(self) -> None:
        made: list[tuple[str | None, int]] = []

        def factory(font_id: str | None, size: int) -> RecordingRasterizer:
            made.append((font_id, size))
            return RecordingRasterizer(cell=(size // 2, size))

        caches = GlyphCacheSet(factory)
        a = caches.get("mono", 16)
        assert caches.get("mono", 16) is a
        b = caches.get("mono", 20)
        assert b is not a
        assert (b.cell_width, b.cell_height) == (10, 20)
        assert ("mono", 16) in caches
        assert len(caches) == 2
        assert made == [("mono", 16), ("mono", 20)]

    def test_clear(self) -> None:
        caches = GlyphCacheSet(lambda font_id, size: RecordingRasterizer())
        caches.get(None, 16)
        caches.clear()
        assert len(caches) == 0

    def test_sets_do_not_share(self) -> None:
        def factory(font_id: str | None, size: int) -> RecordingRasterizer:
            return RecordingRasterizer()

        assert GlyphCacheSet(factory).get(None, 16) is not GlyphCacheSet(factory).get(None, 16)


class TestPillowRasterizer:
    def test_default_font(self) -> None:
        font = PillowRasterizer(size=16)
        width, height = font.cell_size()
        assert width > 0
        assert height > 0
        mask = font.rasterize("A", CellAttributes(), width, height)
        assert mask.mode == "L"
        assert mask.size == (width, height)
        assert mask.getbbox() is not None

    def test_can_display(self) -> None:
        font = PillowRasterizer(size=16)
        assert font.can_display(" ")
        assert font.can_display("A")

    def test_through_cache(self) -> None:
        cache = GlyphCache(PillowRasterizer(size=16))
        image = cache.get_image(Cell.of("A", RED_ON_BLACK))
        assert Color.RED.to_rgb() in colors(image)


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestRedundantWrite:
    def test_rewriting_same_cell_costs_nothing(self) -> None:
        font = RecordingRasterizer()
        cache = GlyphCache(font)
        surface = ImageSurface(80 * 8, 24 * 16)
        screen = PixelScreen(surface, 80, 24, glyphs=cache)

        assert screen.flush() == 80 * 24
        screen.put_cell(0, 0, Cell.of("A", RED_ON_BLACK))
        assert screen.flush() == 1
        assert surface.image.getpixel((0, 0)) == Color.RED.to_rgb()
        entries, calls = len(cache), len(font.calls)

        screen.put_cell(0, 0, Cell.of("A", RED_ON_BLACK))
        assert screen.flush() == 0
        assert len(cache) == entries
        assert len(font.calls) == calls
        assert surface.present_count == 3
