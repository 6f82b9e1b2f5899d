"""Pixel-surface backend: cells drawn as cached glyph images.

``PixelScreen`` blits one ``GlyphCache`` image per dirty cell onto a
``Surface`` and draws the cursor on top.  ``ImageSurface`` is a Pillow
framebuffer; a GUI toolkit plugs in by implementing ``Surface`` and
calling the ``PixelBackend.on_*`` methods from its event handlers.
"""

from __future__ import annotations

import logging
from typing import Protocol

from PIL import Image, ImageDraw

from pi.screen.backend import GenericBackend
from pi.screen.cell import Cell
from pi.screen.events import (
    KeypressEvent,
    MouseEvent,
    MouseType,
    ResizeEvent,
    ResizeType,
)
from pi.screen.glyphs import GlyphCache, GlyphCacheSet
from pi.screen.screen import BlinkClock, CursorStyle, LogicalScreen
from pi.screen.session import TSessionInfo
from pi.screen.settings import ScreenSettings

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]


class Surface(Protocol):
    """A pixel framebuffer."""

    @property
    def size(self) -> tuple[int, int]: ...

    @property
    def is_open(self) -> bool: ...

    def blit(self, image: Image.Image, x: int, y: int) -> None: ...

    def fill_rect(self, x: int, y: int, width: int, height: int, color: RGB) -> None: ...

    def draw_rect(self, x: int, y: int, width: int, height: int, color: RGB) -> None:
        """Outline from ``(x, y)`` to ``(x + width, y + height)`` inclusive."""
        ...

    def present(self) -> None: ...

    def close(self) -> None: ...


class ImageSurface:
    """A ``Surface`` backed by an in-memory Pillow RGB image."""

    def __init__(self, width: int, height: int) -> None:
        self.image = Image.new("RGB", (max(1, width), max(1, height)))
        self._draw = ImageDraw.Draw(self.image)
        self._open = True
        self.present_count = 0

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def is_open(self) -> bool:
        return self._open

    def _check_open(self) -> None:
        if not self._open:
            raise ValueError("surface is closed")

    def resize(self, width: int, height: int) -> None:
        self._check_open()
        old = self.image
        self.image = Image.new("RGB", (max(1, width), max(1, height)))
        self.image.paste(old, (0, 0))
        self._draw = ImageDraw.Draw(self.image)

    def blit(self, image: Image.Image, x: int, y: int) -> None:
        self._check_open()
        self.image.paste(image, (x, y))

    def fill_rect(self, x: int, y: int, width: int, height: int, color: RGB) -> None:
        self._check_open()
        if width <= 0 or height <= 0:
            return
        self._draw.rectangle([x, y, x + width - 1, y + height - 1], fill=color)

    def draw_rect(self, x: int, y: int, width: int, height: int, color: RGB) -> None:
        self._check_open()
        self._draw.rectangle([x, y, x + width, y + height], outline=color)

    def present(self) -> None:
        self._check_open()
        self.present_count += 1

    def snapshot(self) -> Image.Image:
        return self.image.copy()

    def close(self) -> None:
        self._open = False


# ---------------------------------------------------------------------------
# PixelScreen
# ---------------------------------------------------------------------------


class PixelScreen(LogicalScreen):
    """A ``LogicalScreen`` that draws glyph images onto a ``Surface``."""

    def __init__(
        self,
        surface: Surface | None,
        width: int = 80,
        height: int = 24,
        *,
        glyphs: GlyphCache,
        blink_clock: BlinkClock | None = None,
        cursor_style: CursorStyle | str = CursorStyle.UNDERLINE,
    ) -> None:
        super().__init__(
            width, height, blink_clock=blink_clock, cursor_style=cursor_style
        )
        self.surface = surface
        self.glyphs = glyphs
        self._target: Surface | None = None

    @property
    def cell_width(self) -> int:
        return self.glyphs.cell_width

    @property
    def cell_height(self) -> int:
        return self.glyphs.cell_height

    def pixel_size(self) -> tuple[int, int]:
        return self.width * self.cell_width, self.height * self.cell_height

    def text_column(self, px: int) -> int:
        """The column containing pixel x-coordinate *px*, clamped to the grid."""
        return min(max(0, px // self.cell_width), max(0, self.width - 1))

    def text_row(self, py: int) -> int:
        return min(max(0, py // self.cell_height), max(0, self.height - 1))

    def set_font(self, glyphs: GlyphCache) -> None:
        """Switch glyph caches; everything is redrawn at the new cell size."""
        with self.lock:
            self.glyphs = glyphs
            self.really_cleared = True
            resize = getattr(self.surface, "resize", None)
            if resize is not None:
                resize(*self.pixel_size())

    def detach(self) -> None:
        self.surface = None

    def _is_attached(self) -> bool:
        return self.surface is not None and self.surface.is_open

    def _begin_flush(self, blink_visible: bool) -> bool:
        # Pinned for the whole flush; shutdown may detach concurrently.
        surface = self.surface
        if surface is None or not surface.is_open:
            return False
        self._target = surface
        return True

    def _draw_cell(self, x: int, y: int, cell: Cell, blink_visible: bool) -> None:
        target = self._target
        if target is None:
            return
        cw, ch = self.cell_width, self.cell_height
        image = self.glyphs.get_image(cell, cw, ch, blink_visible)
        target.blit(image, x * cw, y * ch)

    def _draw_cursor(self, x: int, y: int, cell: Cell | None) -> None:
        target = self._target
        if target is None:
            return
        cw, ch = self.cell_width, self.cell_height
        resolved = cell.resolved() if cell is not None else Cell()
        color = resolved.fore_color.to_rgb(resolved.bold)
        left, top = x * cw, y * ch
        if self.cursor_style is CursorStyle.BLOCK:
            target.fill_rect(left, top, cw, ch, color)
        elif self.cursor_style is CursorStyle.OUTLINE:
            target.draw_rect(left, top, cw - 1, ch - 1, color)
        else:
            target.fill_rect(left, top + ch - 2, cw, 2, color)

    def _end_flush(self, cursor_shown: bool) -> None:
        target, self._target = self._target, None
        if target is not None:
            target.present()


# ---------------------------------------------------------------------------
# PixelBackend
# ---------------------------------------------------------------------------

_BUTTON_FIELDS = {1: "mouse1", 2: "mouse2", 3: "mouse3"}


class PixelBackend(GenericBackend):
    """Backend for a pixel surface.

    The surface's owner forwards toolkit input through :meth:`on_key`,
    :meth:`on_mouse`, :meth:`on_resize` and :meth:`on_focus_gained`; these
    may run on any thread.
    """

    def __init__(
        self,
        surface: Surface | None = None,
        width: int = 80,
        height: int = 24,
        *,
        glyphs: GlyphCache | None = None,
        glyph_caches: GlyphCacheSet | None = None,
        settings: ScreenSettings | None = None,
        listener: object | None = None,
        blink_clock: BlinkClock | None = None,
    ) -> None:
        settings = settings or ScreenSettings.from_env()
        self.glyph_caches = glyph_caches or GlyphCacheSet()
        if glyphs is None:
            glyphs = self.glyph_caches.get(settings.font_path, settings.font_size)
        if surface is None:
            surface = ImageSurface(width * glyphs.cell_width, height * glyphs.cell_height)
        screen = PixelScreen(
            surface,
            width,
            height,
            glyphs=glyphs,
            blink_clock=blink_clock or BlinkClock(settings.blink_millis),
            cursor_style=settings.cursor_style,
        )
        super().__init__(
            screen, TSessionInfo(width, height), listener=listener, settings=settings
        )
        self.surface = surface
        self.activate()

    # -- toolkit callbacks --------------------------------------------------

    def on_key(
        self,
        key: str = "",
        char: str = "",
        *,
        alt: bool = False,
        ctrl: bool = False,
        shift: bool = False,
    ) -> None:
        self.session_info.touch()
        self.queue_event(KeypressEvent(key=key, char=char, alt=alt, ctrl=ctrl, shift=shift))

    def on_mouse(
        self,
        type: MouseType,
        px: int,
        py: int,
        *,
        button: int = 0,
        wheel: int = 0,
        alt: bool = False,
        ctrl: bool = False,
        shift: bool = False,
    ) -> None:
        """Queue a mouse event at pixel ``(px, py)``.

        *button* is 1-3 for the pressed button; *wheel* is negative for a
        scroll up and positive for a scroll down.
        """
        screen = self.screen
        x = screen.text_column(px)
        y = screen.text_row(py)
        event = MouseEvent(
            type=type,
            x=x,
            y=y,
            absolute_x=x,
            absolute_y=y,
            pixel_offset_x=px - x * screen.cell_width,
            pixel_offset_y=py - y * screen.cell_height,
            mouse_wheel_up=wheel < 0,
            mouse_wheel_down=wheel > 0,
            alt=alt,
            ctrl=ctrl,
            shift=shift,
        )
        if button in _BUTTON_FIELDS:
            setattr(event, _BUTTON_FIELDS[button], True)
        self.session_info.touch()
        self.queue_event(event)

    def on_resize(self, px_width: int, px_height: int) -> None:
        """The surface was resized to ``px_width x px_height`` pixels."""
        screen = self.screen
        columns = max(1, px_width // screen.cell_width)
        rows = max(1, px_height // screen.cell_height)
        resize = getattr(self.surface, "resize", None)
        if resize is not None and not self.is_shut_down:
            resize(px_width, px_height)
        screen.invalidate()
        if (columns, rows) == (
            self.session_info.window_width,
            self.session_info.window_height,
        ):
            return
        self.session_info.set_window_size(columns, rows)
        self.queue_event(ResizeEvent(ResizeType.SCREEN, columns, rows))

    def on_focus_gained(self) -> None:
        self.screen.invalidate()

    # -- fonts --------------------------------------------------------------

    def set_font(self, font_path: str | None, size: int) -> None:
        glyphs = self.glyph_caches.get(font_path, size)
        self.screen.set_font(glyphs)
        logger.debug("Font set to %s at %d", font_path or "<default>", size)

    def reload_options(self, settings: ScreenSettings | None = None) -> None:
        previous = (self.settings.font_path, self.settings.font_size)
        super().reload_options(settings)
        current = (self.settings.font_path, self.settings.font_size)
        if current != previous:
            self.set_font(*current)

    # -- lifecycle ----------------------------------------------------------

    def _close_device(self) -> None:
        surface = getattr(self, "surface", None)
        if surface is None:
            return
        self.surface = None
        screen = getattr(self, "screen", None)
        if isinstance(screen, PixelScreen):
            screen.detach()
        surface.close()
