"""Decoded input events delivered by backends.

Backends never hand raw bytes or toolkit objects to the application; every
input becomes one of the dataclasses below.  ``InputEvent.kind`` gives the
coarse tag (``KEY``, ``MOUSE_DOWN`` ...) for code that only needs to
switch on the event type.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class EventKind(Enum):
    KEY = "key"
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    MOUSE_MOTION = "mouse_motion"
    MOUSE_DOUBLE_CLICK = "mouse_double_click"
    RESIZE = "resize"
    COMMAND = "command"


@dataclass
class InputEvent:
    """Base class: creation time plus the backend that produced the event."""

    time: float = field(default_factory=time.monotonic, kw_only=True)
    backend: Any = field(default=None, kw_only=True, repr=False, compare=False)

    @property
    def kind(self) -> EventKind:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Keyboard
# ---------------------------------------------------------------------------


@dataclass
class KeypressEvent(InputEvent):
    """A key press.

    ``key`` names a function key (``"enter"``, ``"up"``, ``"f5"`` ...) and is
    empty for ordinary characters, which arrive in ``char``.
    """

    key: str = ""
    char: str = ""
    alt: bool = False
    ctrl: bool = False
    shift: bool = False

    @property
    def kind(self) -> EventKind:
        return EventKind.KEY

    @property
    def is_fn_key(self) -> bool:
        return bool(self.key)

    def dup(self) -> KeypressEvent:
        return replace(self)

    def __str__(self) -> str:
        mods = "".join(
            name
            for flag, name in ((self.ctrl, "ctrl+"), (self.alt, "alt+"), (self.shift, "shift+"))
            if flag
        )
        return f"Keypress: {mods}{self.key or self.char!r}"


# ---------------------------------------------------------------------------
# Mouse
# ---------------------------------------------------------------------------


class MouseType(Enum):
    MOUSE_MOTION = "mouse_motion"
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    MOUSE_DOUBLE_CLICK = "mouse_double_click"


@dataclass
class MouseEvent(InputEvent):
    """A mouse event in text-cell coordinates.

    ``x``/``y`` are relative to whoever receives the event; ``absolute_x``
    and ``absolute_y`` are relative to the whole screen of the backend
    that queued it.
    """

    type: MouseType = MouseType.MOUSE_MOTION
    x: int = 0
    y: int = 0
    absolute_x: int = 0
    absolute_y: int = 0
    pixel_offset_x: int = 0
    pixel_offset_y: int = 0
    mouse1: bool = False
    mouse2: bool = False
    mouse3: bool = False
    mouse_wheel_up: bool = False
    mouse_wheel_down: bool = False
    alt: bool = False
    ctrl: bool = False
    shift: bool = False

    @property
    def kind(self) -> EventKind:
        return EventKind(self.type.value)

    def dup(self) -> MouseEvent:
        return replace(self)

    def translated(self, dx: int, dy: int) -> MouseEvent:
        """Return a copy moved by ``(dx, dy)`` in both coordinate systems."""
        event = replace(self)
        event.x = self.x + dx
        event.y = self.y + dy
        event.absolute_x = event.x
        event.absolute_y = event.y
        return event

    def __str__(self) -> str:
        return (
            f"Mouse: {self.type.name} x {self.x} y {self.y} "
            f"absoluteX {self.absolute_x} absoluteY {self.absolute_y} "
            f"1 {self.mouse1} 2 {self.mouse2} 3 {self.mouse3} "
            f"DOWN {self.mouse_wheel_down} UP {self.mouse_wheel_up}"
        )


# ---------------------------------------------------------------------------
# Resize / command
# ---------------------------------------------------------------------------


class ResizeType(Enum):
    SCREEN = "screen"
    WIDGET = "widget"


@dataclass
class ResizeEvent(InputEvent):
    type: ResizeType = ResizeType.SCREEN
    width: int = 0
    height: int = 0

    @property
    def kind(self) -> EventKind:
        return EventKind.RESIZE

    def __str__(self) -> str:
        return f"Resize: {self.type.name} width = {self.width} height = {self.height}"


@dataclass
class CommandEvent(InputEvent):
    """An application-level command such as ``"exit"`` or ``"repaint"``."""

    command: str = ""

    @property
    def kind(self) -> EventKind:
        return EventKind.COMMAND


CMD_EXIT = "exit"
CMD_REPAINT = "repaint"
