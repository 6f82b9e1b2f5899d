"""Glyph rasterization and the per-font glyph image cache.

``GlyphCache.get_image`` turns a ``Cell`` into a cell-sized RGB image.
Images are memoized by the cell's full visual state, so an unchanged cell
costs one dictionary lookup on every later flush.  Blinking cells get two
images, one per blink phase, kept in separate maps.

Rasterizers only produce ``"L"`` coverage masks; colouring, underline and
blink handling happen here.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Protocol

from PIL import Image, ImageDraw, ImageFont

from pi.screen.cell import Cell, CellAttributes

logger = logging.getLogger(__name__)

__all__ = [
    "FontChain",
    "FontRange",
    "GlyphCache",
    "GlyphCacheSet",
    "PillowRasterizer",
    "Rasterizer",
    "classify_codepoint",
]


class Rasterizer(Protocol):
    """Renders single characters into coverage masks."""

    def rasterize(
        self, char: str, attrs: CellAttributes, width: int, height: int
    ) -> Image.Image:
        """Return a ``width x height`` mode ``"L"`` mask for *char*."""
        ...

    def can_display(self, char: str) -> bool: ...

    def cell_size(self) -> tuple[int, int]: ...


# ---------------------------------------------------------------------------
# Font selection
# ---------------------------------------------------------------------------


class FontRange(Enum):
    MONO = "mono"
    CJK = "cjk"
    EMOJI = "emoji"


_CJK_RANGES = (
    (0x1100, 0x11FF),  # Hangul Jamo
    (0x2E80, 0x2FDF),  # CJK radicals
    (0x3000, 0x30FF),  # CJK punctuation, kana
    (0x3400, 0x4DBF),  # CJK Extension A
    (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    (0xAC00, 0xD7AF),  # Hangul syllables
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0xFF00, 0xFFEF),  # fullwidth forms
    (0x20000, 0x2EBEF),  # CJK Extensions B-F
)

_EMOJI_RANGES = (
    (0x2600, 0x27BF),  # misc symbols, dingbats
    (0x1F000, 0x1FAFF),
)


def classify_codepoint(char: str) -> FontRange:
    """Classify the first code point of *char* by Unicode block."""
    if not char:
        return FontRange.MONO
    cp = ord(char[0])
    for lo, hi in _CJK_RANGES:
        if lo <= cp <= hi:
            return FontRange.CJK
    for lo, hi in _EMOJI_RANGES:
        if lo <= cp <= hi:
            return FontRange.EMOJI
    return FontRange.MONO


class FontChain:
    """Primary font plus optional CJK, emoji and last-resort fallbacks."""

    def __init__(
        self,
        primary: Rasterizer,
        cjk: Rasterizer | None = None,
        emoji: Rasterizer | None = None,
        fallback: Rasterizer | None = None,
    ) -> None:
        self.primary = primary
        self.cjk = cjk
        self.emoji = emoji
        self.fallback = fallback

    def select(self, char: str) -> Rasterizer:
        """Pick the rasterizer for *char*.

        The last-resort font is returned even when it cannot display
        *char* either; a wrong glyph beats no glyph.
        """
        if self.primary.can_display(char):
            return self.primary
        kind = classify_codepoint(char)
        ranged = {FontRange.CJK: self.cjk, FontRange.EMOJI: self.emoji}.get(kind)
        if ranged is not None and ranged.can_display(char):
            return ranged
        return self.fallback if self.fallback is not None else self.primary


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

_Key = tuple[Cell, int, int]


class GlyphCache:
    """Memoized cell images for one font chain.

    The cache key is a copy of the cell with reverse video already applied,
    so ``reverse`` white-on-black and plain black-on-white share an image,
    and a caller mutating its cell afterwards cannot corrupt the key.
    """

    def __init__(
        self,
        fonts: FontChain | Rasterizer,
        cell_width: int | None = None,
        cell_height: int | None = None,
    ) -> None:
        self.fonts = fonts if isinstance(fonts, FontChain) else FontChain(fonts)
        self._width_override = cell_width
        self._height_override = cell_height
        self.cell_width = 0
        self.cell_height = 0
        self._visible: dict[_Key, Image.Image] = {}
        self._hidden: dict[_Key, Image.Image] = {}
        self.misses = 0
        self._compute_metrics()

    def _compute_metrics(self) -> None:
        width, height = self.fonts.primary.cell_size()
        self.cell_width = self._width_override or width
        self.cell_height = self._height_override or height

    def __len__(self) -> int:
        return len(self._visible) + len(self._hidden)

    @property
    def visible_count(self) -> int:
        return len(self._visible)

    @property
    def hidden_count(self) -> int:
        return len(self._hidden)

    def reset(self, fonts: FontChain | Rasterizer | None = None) -> None:
        """Drop every image, optionally switching fonts, and re-measure."""
        if fonts is not None:
            self.fonts = fonts if isinstance(fonts, FontChain) else FontChain(fonts)
        dropped = len(self)
        self._visible.clear()
        self._hidden.clear()
        self._compute_metrics()
        logger.debug(
            "Glyph cache reset: dropped %d images, cell %dx%d",
            dropped,
            self.cell_width,
            self.cell_height,
        )

    def get_image(
        self,
        cell: Cell,
        width: int | None = None,
        height: int | None = None,
        blink_visible: bool = True,
    ) -> Image.Image:
        """Return the image for *cell*, rendering it on first use."""
        width = width or self.cell_width
        height = height or self.cell_height
        hidden = cell.blink and not blink_visible
        images = self._hidden if hidden else self._visible

        key_cell = cell.resolved()
        key = (key_cell, width, height)
        image = images.get(key)
        if image is not None:
            return image

        image = self._render(key_cell, width, height, hidden)
        images[key] = image
        self.misses += 1
        return image

    def _render(self, cell: Cell, width: int, height: int, hidden: bool) -> Image.Image:
        image = Image.new("RGB", (width, height), cell.back_color.to_rgb())
        if hidden or cell.invisible:
            return image

        fore = cell.fore_color.to_rgb(cell.bold)
        draw = ImageDraw.Draw(image)
        if cell.char.strip():
            font = self.fonts.select(cell.char)
            mask = font.rasterize(cell.char, cell, width, height)
            if mask.mode != "L":
                mask = mask.convert("L")
            if mask.size != (width, height):
                fitted = Image.new("L", (width, height), 0)
                fitted.paste(mask, (0, 0))
                mask = fitted
            draw.bitmap((0, 0), mask, fill=fore)
        if cell.underline:
            draw.rectangle([0, height - 2, width - 1, height - 1], fill=fore)
        return image


class GlyphCacheSet:
    """Glyph caches keyed by ``(font_id, size)``.

    Owned by whoever renders; two sets never share images.
    """

    def __init__(
        self,
        factory: Callable[[str | None, int], FontChain | Rasterizer] | None = None,
    ) -> None:
        self._factory = factory or _pillow_chain
        self._caches: dict[tuple[str | None, int], GlyphCache] = {}

    def get(self, font_id: str | None, size: int) -> GlyphCache:
        key = (font_id, size)
        cache = self._caches.get(key)
        if cache is None:
            cache = GlyphCache(self._factory(font_id, size))
            self._caches[key] = cache
        return cache

    def __len__(self) -> int:
        return len(self._caches)

    def __contains__(self, key: object) -> bool:
        return key in self._caches

    def clear(self) -> None:
        self._caches.clear()


def _pillow_chain(font_id: str | None, size: int) -> FontChain:
    primary = PillowRasterizer(font_id, size)
    return FontChain(primary, fallback=primary)


# ---------------------------------------------------------------------------
# Pillow rasterizer
# ---------------------------------------------------------------------------

# A private-use code point no font maps; renders as the font's .notdef glyph.
_NOTDEF_PROBE = "\U0010fffd"


class PillowRasterizer:
    """Rasterizer over a ``PIL.ImageFont`` font.

    *font_path* names a TrueType/OpenType file; without one Pillow's
    built-in font is used at *size*.
    """

    def __init__(
        self,
        font_path: str | None = None,
        size: int = 16,
        *,
        font: ImageFont.ImageFont | ImageFont.FreeTypeFont | None = None,
    ) -> None:
        if font is not None:
            self.font = font
        elif font_path:
            self.font = ImageFont.truetype(font_path, size)
        else:
            self.font = ImageFont.load_default(size)
        self.font_path = font_path
        self.size = size
        self._cell_size = self._measure()
        self._notdef: bytes | None = None

    def _measure(self) -> tuple[int, int]:
        left, top, right, bottom = self.font.getbbox("M")
        width = max(1, int(right - left))
        getmetrics = getattr(self.font, "getmetrics", None)
        if getmetrics is not None:
            ascent, descent = getmetrics()
            height = ascent + descent
        else:
            height = bottom
        return width, max(1, int(height))

    def cell_size(self) -> tuple[int, int]:
        return self._cell_size

    def rasterize(
        self, char: str, attrs: CellAttributes, width: int, height: int
    ) -> Image.Image:
        mask = Image.new("L", (width, height), 0)
        draw = ImageDraw.Draw(mask)
        if attrs.bold and isinstance(self.font, ImageFont.FreeTypeFont):
            draw.text((0, 0), char, fill=255, font=self.font, stroke_width=1, stroke_fill=255)
        else:
            draw.text((0, 0), char, fill=255, font=self.font)
        return mask

    def can_display(self, char: str) -> bool:
        if not char or char.isspace():
            return True
        width, height = self._cell_size
        rendered = self.rasterize(char, CellAttributes(), width, height)
        if rendered.getbbox() is None:
            return False
        if self._notdef is None:
            self._notdef = self.rasterize(
                _NOTDEF_PROBE, CellAttributes(), width, height
            ).tobytes()
        return rendered.tobytes() != self._notdef
