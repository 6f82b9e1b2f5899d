"""Embed one logical screen inside a rectangle of a host screen.

The nested backend owns an ordinary ``LogicalScreen`` that applications
paint as usual.  On every flush the whole embedded grid is copied into
the host at ``(x + inset, y + inset)``, surrounded by an optional border
box with the title.  Mouse events inside the embedded rectangle are
translated into embedded coordinates and queued; the cell under the
mouse pointer is drawn with inverted colours.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from pi.screen.backend import GenericBackend
from pi.screen.cell import CellAttributes, Color
from pi.screen.events import (
    InputEvent,
    KeypressEvent,
    MouseEvent,
    ResizeEvent,
    ResizeType,
)
from pi.screen.screen import BlinkClock, LogicalScreen, Screen
from pi.screen.session import TSessionInfo
from pi.screen.settings import ScreenSettings

logger = logging.getLogger(__name__)

_DEFAULT_BORDER = CellAttributes(fore_color=Color.WHITE, back_color=Color.BLUE, bold=True)
_DEFAULT_BACKGROUND = CellAttributes(fore_color=Color.WHITE, back_color=Color.BLUE)


class NestedScreenBackend(GenericBackend):
    """A backend whose "device" is a rectangle of another screen.

    *width* and *height* are the outer size including the border; the
    embedded screen is ``(width - 2 * inset) x (height - 2 * inset)``.
    *on_repaint*, when given, runs after every draw, typically the host
    backend's ``flush_screen``.
    """

    def __init__(
        self,
        host: Screen,
        x: int,
        y: int,
        width: int,
        height: int,
        *,
        inset: int = 1,
        title: str = "",
        border: CellAttributes | None = None,
        background: CellAttributes | None = None,
        on_repaint: Callable[[], None] | None = None,
        listener: object | None = None,
        settings: ScreenSettings | None = None,
        blink_clock: BlinkClock | None = None,
    ) -> None:
        settings = settings or ScreenSettings()
        inner_w, inner_h = max(0, width - 2 * inset), max(0, height - 2 * inset)
        screen = LogicalScreen(
            inner_w,
            inner_h,
            blink_clock=blink_clock,
            cursor_style=settings.cursor_style,
        )
        super().__init__(
            screen, TSessionInfo(inner_w, inner_h), listener=listener, settings=settings
        )
        self.host = host
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.inset = inset
        self.border = border or _DEFAULT_BORDER
        self.background = background or _DEFAULT_BACKGROUND
        self.on_repaint = on_repaint
        self._draw_lock = threading.Lock()
        self._mouse_x = -1
        self._mouse_y = -1
        if title:
            screen.set_title(title)
        self.activate()

    # -- geometry -----------------------------------------------------------

    @property
    def origin(self) -> tuple[int, int]:
        """Host coordinate of embedded cell ``(0, 0)``."""
        return self.x + self.inset, self.y + self.inset

    def contains(self, host_x: int, host_y: int) -> bool:
        ox, oy = self.origin
        return (
            0 <= host_x - ox < self.screen.width
            and 0 <= host_y - oy < self.screen.height
        )

    def move_to(self, x: int, y: int) -> None:
        with self._draw_lock:
            self.x = x
            self.y = y

    def resize(self, width: int, height: int) -> None:
        """Change the outer size; the embedded screen follows.

        Events already queued stay queued.
        """
        with self._draw_lock:
            self.width = width
            self.height = height
            inner_w = max(0, width - 2 * self.inset)
            inner_h = max(0, height - 2 * self.inset)
            self.screen.resize(inner_w, inner_h)
            self.session_info.set_window_size(inner_w, inner_h)
        self.queue_event(ResizeEvent(ResizeType.WIDGET, inner_w, inner_h))

    # -- drawing ------------------------------------------------------------

    def draw(self) -> None:
        """Copy the embedded screen (and border) into the host."""
        with self._draw_lock:
            if self.is_shut_down:
                return
            host = self.host
            if self.inset > 0:
                host.draw_box(
                    self.x,
                    self.y,
                    self.x + self.width,
                    self.y + self.height,
                    self.border,
                    self.background,
                )
                title = self.screen.title
                if title and self.width > 4:
                    host.put_string(
                        self.x + 2, self.y, f" {title} "[: self.width - 4], self.border
                    )

            ox, oy = self.origin
            screen = self.screen
            with screen.lock:
                for ey in range(screen.height):
                    for ex in range(screen.width):
                        cell = screen.get_cell(ex, ey)
                        if ex == self._mouse_x and ey == self._mouse_y:
                            cell.fore_color = cell.fore_color.invert()
                            cell.back_color = cell.back_color.invert()
                        host.put_cell(ox + ex, oy + ey, cell)
                if screen.cursor_visible:
                    host.set_cursor(ox + screen.cursor_x, oy + screen.cursor_y, True)
                else:
                    host.hide_cursor()
                # Nothing to render; keeps is_dirty() meaningful.
                screen.flush()

    def _flush_device(self) -> None:
        self.draw()
        if self.on_repaint is not None:
            self.on_repaint()

    # -- input --------------------------------------------------------------

    def dispatch(self, event: InputEvent) -> bool:
        """Offer a host event; returns ``True`` if it was queued here."""
        if self.is_shut_down:
            return False
        if isinstance(event, MouseEvent):
            if not self.contains(event.x, event.y):
                self._mouse_x = self._mouse_y = -1
                return False
            ox, oy = self.origin
            inner = event.translated(-ox, -oy)
            inner.backend = self
            self._mouse_x, self._mouse_y = inner.x, inner.y
            self.session_info.touch()
            self.queue_event(inner)
            return True
        if isinstance(event, KeypressEvent):
            key = event.dup()
            key.backend = self
            self.session_info.touch()
            self.queue_event(key)
            return True
        return False
