"""Per-session information: user, language, window size, idle time."""

from __future__ import annotations

import getpass
import locale
import os
import sys
import time
from typing import Callable, Protocol


class SessionInfo(Protocol):
    username: str
    language: str

    @property
    def window_width(self) -> int: ...

    @property
    def window_height(self) -> int: ...

    @property
    def start_time(self) -> float: ...

    @property
    def idle_time(self) -> float: ...

    def query_window_size(self) -> None: ...


class TSessionInfo:
    """Session information with fixed dimensions, for non-tty backends."""

    def __init__(
        self,
        width: int = 80,
        height: int = 24,
        *,
        username: str = "",
        language: str = "en_US",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.username = username
        self.language = language
        self._width = width
        self._height = height
        self._clock = clock
        self._start_time = clock()
        self._last_activity = self._start_time

    @property
    def window_width(self) -> int:
        return self._width

    @property
    def window_height(self) -> int:
        return self._height

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def idle_time(self) -> float:
        """Seconds since the last call to :meth:`touch`."""
        return self._clock() - self._last_activity

    def touch(self) -> None:
        """Record user activity, resetting the idle time."""
        self._last_activity = self._clock()

    def set_window_size(self, width: int, height: int) -> None:
        self._width = width
        self._height = height

    def query_window_size(self) -> None:
        pass


class TTYSessionInfo(TSessionInfo):
    """Session information for a real terminal.

    :meth:`query_window_size` asks the OS for the terminal size at most once
    per second; calls inside that window are ignored.
    """

    QUERY_INTERVAL = 1.0

    def __init__(
        self,
        fd: int | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        get_size: Callable[[int], os.terminal_size] = os.get_terminal_size,
    ) -> None:
        super().__init__(
            80,
            24,
            username=_current_user(),
            language=_current_language(),
            clock=clock,
        )
        self._fd = fd if fd is not None else _stdout_fd()
        self._get_size = get_size
        self._last_query: float | None = None
        self.query_window_size()

    def query_window_size(self) -> None:
        now = self._clock()
        if self._last_query is not None and now - self._last_query < self.QUERY_INTERVAL:
            return
        self._last_query = now
        try:
            size = self._get_size(self._fd)
        except (ValueError, OSError):
            return
        if size.columns > 0:
            self._width = size.columns
        if size.lines > 0:
            self._height = size.lines


def _stdout_fd() -> int:
    try:
        return sys.stdout.fileno()
    except (AttributeError, ValueError, OSError):
        return 1


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def _current_language() -> str:
    lang = os.environ.get("LANG", "")
    if lang:
        return lang.split(".")[0]
    try:
        return locale.getlocale()[0] or ""
    except ValueError:
        return ""
