"""ECMA-48 (ANSI/xterm) terminal backend.

``ECMA48Screen`` turns the dirty cells of a flush into escape sequences:
a cursor move only where the next dirty cell is not where the terminal
cursor already is, and an SGR only where the attributes change.  The
whole flush goes out as a single ``Terminal.write`` followed by one
``Terminal.flush``.

Terminals blink SGR 5 text and the cursor themselves, so this screen
never redraws cells just because they blink.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, MutableSequence

import wcwidth as _wcwidth

from pi.screen.backend import GenericBackend
from pi.screen.cell import Cell, CellAttributes
from pi.screen.events import InputEvent, ResizeEvent, ResizeType
from pi.screen.input_decoder import InputDecoder
from pi.screen.screen import BlinkClock, CursorStyle, LogicalScreen
from pi.screen.session import SessionInfo, TSessionInfo, TTYSessionInfo
from pi.screen.settings import ScreenSettings
from pi.screen.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Escape sequences
# ---------------------------------------------------------------------------

CSI = "\x1b["

NORMAL = "\x1b[0;37;40m"
CLEAR_ALL = NORMAL + "\x1b[2J"
SHOW_CURSOR = "\x1b[?25h"
HIDE_CURSOR = "\x1b[?25l"
MOUSE_ON = "\x1b[?1002;1003;1005;1006h\x1b[?1049h"
MOUSE_OFF = "\x1b[?1002;1003;1006;1005l\x1b[?1049l"
_TITLE_FMT = "\x1b]2;{}\x07"

# DECSCUSR shapes (steady) for the three cursor styles.
_CURSOR_SHAPE = {
    CursorStyle.BLOCK: "\x1b[2 q",
    CursorStyle.UNDERLINE: "\x1b[4 q",
    CursorStyle.OUTLINE: "\x1b[2 q",
}


def goto(x: int, y: int) -> str:
    """Cursor position for 0-based cell ``(x, y)``."""
    return f"{CSI}{y + 1};{x + 1}H"


def sgr(attrs: CellAttributes) -> str:
    """A full SGR sequence (reset first) selecting *attrs*."""
    params = ["0"]
    if attrs.bold:
        params.append("1")
    if attrs.underline:
        params.append("4")
    if attrs.blink:
        params.append("5")
    if attrs.reverse:
        params.append("7")
    if attrs.invisible:
        params.append("8")
    params.append(str(30 + int(attrs.fore_color)))
    params.append(str(40 + int(attrs.back_color)))
    return f"{CSI}{';'.join(params)}m"


def _cell_width(char: str) -> int:
    width = _wcwidth.wcswidth(char)
    return width if width > 0 else 1


# ---------------------------------------------------------------------------
# ECMA48Screen
# ---------------------------------------------------------------------------


class ECMA48Screen(LogicalScreen):
    """A ``LogicalScreen`` that renders to a ``Terminal``."""

    redraw_blinking = False
    redraw_cursor_cell = False
    native_blink = True

    def __init__(
        self,
        terminal: Terminal | None,
        width: int = 80,
        height: int = 24,
        *,
        cursor_style: CursorStyle | str = CursorStyle.UNDERLINE,
    ) -> None:
        super().__init__(
            width,
            height,
            blink_clock=BlinkClock(interval_ms=0),
            cursor_style=cursor_style,
        )
        self.terminal = terminal
        self._out: list[str] = []
        self._last_attr: CellAttributes | None = None
        self._pos: tuple[int, int] | None = None
        self._cursor_on = False
        self._shown_title = ""
        self._shown_cursor_style: CursorStyle | None = None

    def detach(self) -> None:
        """Drop the terminal; later flushes do nothing."""
        self.terminal = None

    def _is_attached(self) -> bool:
        return self.terminal is not None

    def _begin_flush(self, blink_visible: bool) -> bool:
        if self.terminal is None:
            return False
        self._out = []
        if self.really_cleared:
            self._out.append(CLEAR_ALL)
            self._last_attr = None
            self._pos = None
        if self.title != self._shown_title:
            self._out.append(_TITLE_FMT.format(self.title))
            self._shown_title = self.title
        return True

    def _draw_cell(self, x: int, y: int, cell: Cell, blink_visible: bool) -> None:
        if self._pos != (x, y):
            self._out.append(goto(x, y))
        attrs = cell.copy_attributes()
        if attrs != self._last_attr:
            self._out.append(sgr(attrs))
            self._last_attr = attrs
        self._out.append(cell.char)
        self._pos = (x + _cell_width(cell.char), y)

    def _draw_cursor(self, x: int, y: int, cell: Cell | None) -> None:
        if self.cursor_style is not self._shown_cursor_style:
            self._out.append(_CURSOR_SHAPE[self.cursor_style])
            self._shown_cursor_style = self.cursor_style
        if self._pos != (x, y):
            self._out.append(goto(x, y))
            self._pos = (x, y)

    def _end_flush(self, cursor_shown: bool) -> None:
        if cursor_shown and not self._cursor_on:
            self._out.append(SHOW_CURSOR)
            self._cursor_on = True
        elif not cursor_shown and self._cursor_on:
            self._out.append(HIDE_CURSOR)
            self._cursor_on = False
        out, self._out = self._out, []
        terminal = self.terminal
        if not out or terminal is None:
            return
        terminal.write("".join(out))
        terminal.flush()

    def invalidate(self) -> None:
        with self.lock:
            super().invalidate()
            self._shown_cursor_style = None


# ---------------------------------------------------------------------------
# ECMA48Backend
# ---------------------------------------------------------------------------


class ECMA48Backend(GenericBackend):
    """Backend for an xterm-compatible terminal.

    Input from the terminal's reader thread is decoded and queued under a
    private lock.  Each poll (``has_events``/``get_events``) also
    releases a stale lone ESC and checks the window size, queueing a
    ``ResizeEvent(SCREEN)`` when it changed.
    """

    def __init__(
        self,
        terminal: Terminal | None = None,
        *,
        settings: ScreenSettings | None = None,
        session_info: SessionInfo | None = None,
        listener: object | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or ScreenSettings.from_env()
        if terminal is None:
            terminal = ProcessTerminal(write_log_path=settings.write_log_path)
            if session_info is None:
                session_info = TTYSessionInfo(clock=clock)
        if session_info is None:
            session_info = TSessionInfo(terminal.columns, terminal.rows, clock=clock)

        screen = ECMA48Screen(
            terminal,
            session_info.window_width,
            session_info.window_height,
            cursor_style=settings.cursor_style,
        )
        super().__init__(screen, session_info, listener=listener, settings=settings)
        self.terminal: Terminal | None = terminal
        self.decoder = InputDecoder(clock)
        self._clock = clock
        self._input_lock = threading.RLock()
        self._known_size = (screen.width, screen.height)
        self._resize_pending = False
        self._mouse_on = False

        terminal.start(self._on_input, self._on_resize)
        if settings.mouse:
            terminal.write(MOUSE_ON)
            self._mouse_on = True
        terminal.flush()
        self.activate()

    # -- input --------------------------------------------------------------

    def _on_input(self, data: str) -> None:
        # Queued under the decoder lock so a poll cannot reorder events.
        with self._input_lock:
            self._queue(self.decoder.feed(data))

    def _on_resize(self) -> None:
        # Runs in a signal handler: no locks here.
        self._resize_pending = True

    def _queue(self, events: list[InputEvent]) -> None:
        if not events:
            return
        for event in events:
            event.backend = self
        touch = getattr(self.session_info, "touch", None)
        if touch is not None:
            touch()
        self.events.put_all(events)

    def _poll(self) -> None:
        with self._input_lock:
            self._queue(self.decoder.idle_events(self._clock()))
        self._check_size()

    def _check_size(self) -> None:
        if self._resize_pending and self.terminal is not None:
            self._resize_pending = False
            set_size = getattr(self.session_info, "set_window_size", None)
            if set_size is not None:
                set_size(self.terminal.columns, self.terminal.rows)
        else:
            self.session_info.query_window_size()
        size = (self.session_info.window_width, self.session_info.window_height)
        if size == self._known_size:
            return
        self._known_size = size
        logger.debug("Terminal resized to %dx%d", *size)
        self.queue_event(ResizeEvent(ResizeType.SCREEN, size[0], size[1]))

    def has_events(self) -> bool:
        if self.is_shut_down:
            return False
        self._poll()
        return self.events.has_events()

    def get_events(self, queue: MutableSequence[InputEvent]) -> None:
        if self.is_shut_down:
            return
        self._poll()
        self.events.drain_into(queue)

    # -- lifecycle ----------------------------------------------------------

    def _close_device(self) -> None:
        terminal = getattr(self, "terminal", None)
        if terminal is None:
            return
        self.terminal = None
        screen = getattr(self, "screen", None)
        if isinstance(screen, ECMA48Screen):
            screen.detach()
        try:
            if getattr(self, "_mouse_on", False):
                terminal.write(MOUSE_OFF)
            terminal.write(NORMAL + SHOW_CURSOR)
            terminal.flush()
        finally:
            terminal.stop()
