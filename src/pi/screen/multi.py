"""Fan-out composition: one logical screen mirrored to several backends.

``MultiScreen`` forwards every write to each member screen and answers
reads from the first one.  ``MultiBackend`` groups member backends behind
the ``Backend`` protocol: flushes go to every member in order and the
event queues are drained one member after the other, so each member's
own events keep their order.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, MutableSequence

from pi.screen.backend import Backend, BackendState
from pi.screen.cell import Cell, CellAttributes
from pi.screen.events import InputEvent
from pi.screen.screen import Region, Screen
from pi.screen.session import SessionInfo
from pi.screen.settings import ScreenSettings

logger = logging.getLogger(__name__)


class MultiScreen:
    """A ``Screen`` that mirrors writes to all member screens."""

    def __init__(self, screens: Iterable[Screen]) -> None:
        self._screens: list[Screen] = list(screens)
        if not self._screens:
            raise ValueError("MultiScreen needs at least one screen")
        self._lock = threading.Lock()

    @property
    def screens(self) -> tuple[Screen, ...]:
        with self._lock:
            return tuple(self._screens)

    @property
    def first(self) -> Screen:
        with self._lock:
            return self._screens[0]

    def add_screen(self, screen: Screen) -> None:
        """Add *screen*, first copying the current content into it."""
        source = self.first
        if screen is source:
            return
        if (screen.width, screen.height) != (source.width, source.height):
            screen.resize(source.width, source.height)
        for y in range(source.height):
            for x in range(source.width):
                screen.put_cell(x, y, source.get_cell(x, y), clip=False)
        screen.set_cursor(source.cursor_x, source.cursor_y, source.cursor_visible)
        title = getattr(source, "title", "")
        if title:
            screen.set_title(title)
        with self._lock:
            if screen not in self._screens:
                self._screens.append(screen)

    def remove_screen(self, screen: Screen) -> bool:
        """Remove *screen*; the last remaining screen is never removed."""
        with self._lock:
            if len(self._screens) <= 1 or screen not in self._screens:
                return False
            self._screens.remove(screen)
            return True

    # -- readers (first screen) ---------------------------------------------

    @property
    def width(self) -> int:
        return self.first.width

    @property
    def height(self) -> int:
        return self.first.height

    @property
    def cursor_visible(self) -> bool:
        return self.first.cursor_visible

    @property
    def cursor_x(self) -> int:
        return self.first.cursor_x

    @property
    def cursor_y(self) -> int:
        return self.first.cursor_y

    @property
    def title(self) -> str:
        return getattr(self.first, "title", "")

    def get_cell(self, x: int, y: int) -> Cell:
        return self.first.get_cell(x, y)

    def get_attr(self, x: int, y: int) -> CellAttributes:
        return self.first.get_attr(x, y)

    def is_dirty(self) -> bool:
        return any(screen.is_dirty() for screen in self.screens)

    # -- writers (every screen) ---------------------------------------------

    def put_cell(self, x: int, y: int, cell: Cell, clip: bool = True) -> None:
        for screen in self.screens:
            screen.put_cell(x, y, cell, clip)

    def put_attr(
        self, x: int, y: int, attr: CellAttributes, clip: bool = True
    ) -> None:
        for screen in self.screens:
            screen.put_attr(x, y, attr, clip)

    def put_char(
        self, x: int, y: int, ch: str, attr: CellAttributes | None = None
    ) -> None:
        for screen in self.screens:
            screen.put_char(x, y, ch, attr)

    def put_string(
        self, x: int, y: int, text: str, attr: CellAttributes | None = None
    ) -> None:
        for screen in self.screens:
            screen.put_string(x, y, text, attr)

    def put_all(self, ch: str, attr: CellAttributes) -> None:
        for screen in self.screens:
            screen.put_all(ch, attr)

    def h_line(self, x: int, y: int, n: int, ch: str, attr: CellAttributes) -> None:
        for screen in self.screens:
            screen.h_line(x, y, n, ch, attr)

    def v_line(self, x: int, y: int, n: int, ch: str, attr: CellAttributes) -> None:
        for screen in self.screens:
            screen.v_line(x, y, n, ch, attr)

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
        for screen in self.screens:
            screen.draw_box(
                left, top, right, bottom, border, background, border_type, shadow
            )

    def set_offset(self, x: int, y: int) -> None:
        for screen in self.screens:
            screen.set_offset(x, y)

    def set_clip(self, left: int, top: int, right: int, bottom: int) -> None:
        for screen in self.screens:
            screen.set_clip(left, top, right, bottom)

    def reset_clipping(self) -> None:
        for screen in self.screens:
            screen.reset_clipping()

    def set_cursor(self, x: int, y: int, visible: bool = True) -> None:
        for screen in self.screens:
            screen.set_cursor(x, y, visible)

    def hide_cursor(self) -> None:
        for screen in self.screens:
            screen.hide_cursor()

    def resize(self, width: int, height: int) -> None:
        for screen in self.screens:
            screen.resize(width, height)

    def set_title(self, title: str) -> None:
        for screen in self.screens:
            screen.set_title(title)

    def reset(self) -> None:
        for screen in self.screens:
            screen.reset()

    def clear(self) -> None:
        for screen in self.screens:
            screen.clear()

    def invalidate(self) -> None:
        for screen in self.screens:
            screen.invalidate()

    def flush(self, region: Region | None = None) -> int:
        return sum(screen.flush(region) for screen in self.screens)


# ---------------------------------------------------------------------------
# MultiBackend
# ---------------------------------------------------------------------------


class MultiBackend:
    """A ``Backend`` made of several member backends."""

    def __init__(self, backend: Backend, *others: Backend, listener: object | None = None) -> None:
        self._lock = threading.Lock()
        self._state = BackendState.ACTIVE
        self._backends: list[Backend] = [backend]
        self._listener = listener
        self.screen = MultiScreen([backend.get_screen()])
        backend.set_listener(listener)
        for other in others:
            self.add_backend(other)

    @property
    def backends(self) -> tuple[Backend, ...]:
        with self._lock:
            return tuple(self._backends)

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_shut_down(self) -> bool:
        return self._state is BackendState.SHUTDOWN

    def add_backend(self, backend: Backend) -> None:
        """Add *backend*; its screen receives the current composed content."""
        with self._lock:
            if backend in self._backends:
                return
        self.screen.add_screen(backend.get_screen())
        backend.set_listener(self._listener)
        with self._lock:
            if backend in self._backends:
                return
            self._backends.append(backend)
        logger.debug("Added %r, %d members", backend, len(self._backends))

    def remove_backend(self, backend: Backend) -> bool:
        """Remove *backend* without shutting it down.

        The last member is never removed.  Content the removed backend
        already rendered stays on its device.
        """
        with self._lock:
            if len(self._backends) <= 1 or backend not in self._backends:
                return False
            self._backends.remove(backend)
        self.screen.remove_screen(backend.get_screen())
        backend.set_listener(None)
        logger.debug("Removed %r, %d members", backend, len(self._backends))
        return True

    # -- Backend protocol ---------------------------------------------------

    def get_screen(self) -> MultiScreen:
        return self.screen

    def get_session_info(self) -> SessionInfo:
        return self.backends[0].get_session_info()

    def flush_screen(self) -> None:
        if self.is_shut_down:
            return
        for backend in self.backends:
            backend.flush_screen()

    def has_events(self) -> bool:
        if self.is_shut_down:
            return False
        return any(backend.has_events() for backend in self.backends)

    def get_events(self, queue: MutableSequence[InputEvent]) -> None:
        if self.is_shut_down:
            return
        for backend in self.backends:
            backend.get_events(queue)

    def set_listener(self, listener: object | None) -> None:
        self._listener = listener
        for backend in self.backends:
            backend.set_listener(listener)

    def set_title(self, title: str) -> None:
        for backend in self.backends:
            backend.set_title(title)

    def reload_options(self, settings: ScreenSettings | None = None) -> None:
        for backend in self.backends:
            backend.reload_options(settings)

    def shutdown(self) -> None:
        with self._lock:
            if self._state is BackendState.SHUTDOWN:
                return
            self._state = BackendState.SHUTDOWN
            members = list(self._backends)
        for backend in members:
            backend.shutdown()
