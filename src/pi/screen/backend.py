"""Backend protocol and the shared lifecycle/queue plumbing.

A backend couples one ``Screen`` with a physical device and the
``EventQueue`` that device's input threads feed.  ``GenericBackend``
implements the state machine every variant shares::

    CONSTRUCTED --activate()--> ACTIVE --shutdown()--> SHUTDOWN

``SHUTDOWN`` is terminal: flushes, polls and title changes become no-ops,
and the device is released exactly once.  Device write errors raised
during ``flush_screen`` are logged once and swallowed, so a detached
terminal or closed window never takes the application down.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import MutableSequence, Protocol

from pi.screen.event_queue import EventQueue
from pi.screen.events import InputEvent
from pi.screen.screen import CursorStyle, LogicalScreen, Screen
from pi.screen.session import SessionInfo, TSessionInfo
from pi.screen.settings import ScreenSettings

logger = logging.getLogger(__name__)

__all__ = [
    "Backend",
    "BackendState",
    "GenericBackend",
    "HeadlessBackend",
    "wait_for_events",
]


class BackendState(Enum):
    CONSTRUCTED = "constructed"
    ACTIVE = "active"
    SHUTDOWN = "shutdown"


class Backend(Protocol):
    """What the application sees of one output device."""

    def get_screen(self) -> Screen: ...

    def get_session_info(self) -> SessionInfo: ...

    def flush_screen(self) -> None: ...

    def has_events(self) -> bool: ...

    def get_events(self, queue: MutableSequence[InputEvent]) -> None: ...

    def set_listener(self, listener: object | None) -> None: ...

    def set_title(self, title: str) -> None: ...

    def reload_options(self, settings: ScreenSettings | None = None) -> None: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# GenericBackend
# ---------------------------------------------------------------------------


class GenericBackend:
    """Lifecycle, event queue and error policy shared by concrete backends.

    Subclasses call ``super().__init__`` first, set up their device, then
    call :meth:`activate`.  They override :meth:`_flush_device` and
    :meth:`_close_device`; ``_close_device`` must cope with a device that
    was never fully opened.
    """

    def __init__(
        self,
        screen: LogicalScreen,
        session_info: SessionInfo | None = None,
        *,
        listener: object | None = None,
        settings: ScreenSettings | None = None,
    ) -> None:
        self._state_lock = threading.Lock()
        self._state = BackendState.CONSTRUCTED
        self.screen = screen
        self.session_info: SessionInfo = session_info or TSessionInfo(
            screen.width, screen.height
        )
        self.settings = settings or ScreenSettings()
        self.events = EventQueue(listener)
        self._device_failed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.screen.width}x{self.screen.height}, {self._state.value})"

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_shut_down(self) -> bool:
        return self._state is BackendState.SHUTDOWN

    def activate(self) -> None:
        with self._state_lock:
            if self._state is not BackendState.CONSTRUCTED:
                return
            self._state = BackendState.ACTIVE
        logger.debug("%s active", type(self).__name__)

    def shutdown(self) -> None:
        """Release the device.  Safe to call repeatedly and from any thread."""
        with self._state_lock:
            if self._state is BackendState.SHUTDOWN:
                return
            self._state = BackendState.SHUTDOWN
        self.events.close()
        try:
            self._close_device()
        except (OSError, ValueError) as exc:
            # Already gone; nothing left to release.
            logger.debug("%s: error while closing device: %s", type(self).__name__, exc)
        logger.debug("%s shut down", type(self).__name__)

    def __enter__(self) -> GenericBackend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # -- accessors ----------------------------------------------------------

    def get_screen(self) -> Screen:
        return self.screen

    def get_session_info(self) -> SessionInfo:
        return self.session_info

    # -- output -------------------------------------------------------------

    def flush_screen(self) -> None:
        """Push dirty cells to the device; device errors are logged and dropped."""
        if self.is_shut_down:
            return
        try:
            self._flush_device()
        except (OSError, ValueError) as exc:
            if self.is_shut_down:
                # Shut down mid-flush; the device went away underneath us.
                return
            if not self._device_failed:
                logger.warning("%s: device write failed: %s", type(self).__name__, exc)
                self._device_failed = True
            # The device state is unknown now; repaint everything once it works.
            self.screen.invalidate()
            return
        if self._device_failed:
            logger.info("%s: device recovered", type(self).__name__)
            self._device_failed = False

    def set_title(self, title: str) -> None:
        if self.is_shut_down:
            return
        self.screen.set_title(title)

    def reload_options(self, settings: ScreenSettings | None = None) -> None:
        """Re-read settings (from the environment by default) and apply them."""
        self.settings = settings or ScreenSettings.from_env()
        if not getattr(self.screen, "native_blink", False):
            self.screen.blink_clock.interval_ms = self.settings.blink_millis
            self.screen.blink_clock.reset()
        self.screen.cursor_style = CursorStyle.parse(self.settings.cursor_style)
        self.screen.invalidate()

    # -- input --------------------------------------------------------------

    def queue_event(self, event: InputEvent) -> None:
        """Called from input threads: stamp *event* with this backend and queue it."""
        if event.backend is None:
            event.backend = self
        self.events.put(event)

    def has_events(self) -> bool:
        if self.is_shut_down:
            return False
        return self.events.has_events()

    def get_events(self, queue: MutableSequence[InputEvent]) -> None:
        if self.is_shut_down:
            return
        self.events.drain_into(queue)

    def set_listener(self, listener: object | None) -> None:
        self.events.set_listener(listener)

    # -- device hooks -------------------------------------------------------

    def _flush_device(self) -> None:
        self.screen.flush()

    def _close_device(self) -> None:
        pass


class HeadlessBackend(GenericBackend):
    """A backend with no device: flushes only update the physical grid."""

    def __init__(
        self,
        width: int = 80,
        height: int = 24,
        *,
        listener: object | None = None,
        settings: ScreenSettings | None = None,
    ) -> None:
        settings = settings or ScreenSettings()
        screen = LogicalScreen(width, height, cursor_style=settings.cursor_style)
        screen.blink_clock.interval_ms = settings.blink_millis
        super().__init__(screen, listener=listener, settings=settings)
        self.activate()


# ---------------------------------------------------------------------------
# Consumer helper
# ---------------------------------------------------------------------------


def wait_for_events(
    backend: Backend,
    listener: threading.Condition,
    timeout: float | None = None,
) -> bool:
    """Block until *backend* has events or *timeout* seconds pass.

    *listener* must be the object registered with ``set_listener``.  The
    queue is re-checked after every wake-up, so a notification sent before
    the wait started is never needed.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    with listener:
        while not backend.has_events():
            if deadline is None:
                listener.wait()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            listener.wait(remaining)
    return True
