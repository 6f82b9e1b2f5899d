"""Byte-level terminal transports used by the ECMA-48 backend.

Provides a ``Terminal`` protocol and two implementations:

* ``StreamTerminal`` writes to any text stream (a socket file, a pipe,
  ``io.StringIO``) and reads from an optional input stream on a
  background thread.
* ``ProcessTerminal`` drives the controlling tty: raw mode via
  :mod:`tty`/:mod:`termios`, a stdin reader thread and ``SIGWINCH``
  resize notification.

Output is buffered by ``write`` and sent by ``flush``; write errors from
``flush`` propagate so the backend can decide what to do with them.
"""

from __future__ import annotations

import codecs
import logging
import os
import select
import signal
import sys
import termios
import threading
import tty
from typing import Callable, Protocol, TextIO

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    def flush(self) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...


def _append_write_log(path: str, data: str) -> None:
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(data)
    except OSError:
        pass


# ---------------------------------------------------------------------------
# Reader thread
# ---------------------------------------------------------------------------


class _InputReader(threading.Thread):
    """Calls *on_input* with every chunk *read* returns until stopped.

    *read* returns ``None`` when nothing arrived within the poll interval
    and ``""`` at end of input.
    """

    def __init__(
        self,
        read: Callable[[], str | None],
        on_input: Callable[[str], None],
        name: str,
    ) -> None:
        super().__init__(name=name, daemon=True)
        self._read = read
        self._on_input = on_input
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    def run(self) -> None:
        while not self._stopped.is_set():
            try:
                data = self._read()
            except (OSError, ValueError) as exc:
                logger.debug("Input reader stopped: %s", exc)
                return
            if data is None:
                continue
            if data == "":
                return
            if not self._stopped.is_set():
                self._on_input(data)


# ---------------------------------------------------------------------------
# StreamTerminal
# ---------------------------------------------------------------------------


class StreamTerminal:
    """Terminal over plain text streams with a fixed size."""

    def __init__(
        self,
        output: TextIO,
        input: TextIO | None = None,
        *,
        columns: int = 80,
        rows: int = 24,
        write_log_path: str = "",
    ) -> None:
        self._output = output
        self._input = input
        self._columns = columns
        self._rows = rows
        self._pending: list[str] = []
        self._reader: _InputReader | None = None
        self._write_log_path = write_log_path
        self.closed = False

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def rows(self) -> int:
        return self._rows

    def set_size(self, columns: int, rows: int) -> None:
        self._columns = columns
        self._rows = rows

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        if self._input is None or self._reader is not None:
            return
        stream = self._input
        self._reader = _InputReader(lambda: stream.read(1), on_input, "pi-screen-stream-input")
        self._reader.start()

    def stop(self) -> None:
        if self._reader is not None:
            self._reader.stop()
            self._reader = None
        self.closed = True

    def write(self, data: str) -> None:
        self._pending.append(data)

    def flush(self) -> None:
        if not self._pending:
            return
        data = "".join(self._pending)
        self._pending.clear()
        self._output.write(data)
        self._output.flush()
        if self._write_log_path:
            _append_write_log(self._write_log_path, data)


# ---------------------------------------------------------------------------
# ProcessTerminal
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin``/``sys.stdout`` of the current process."""

    def __init__(self, *, write_log_path: str | None = None) -> None:
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: object | None = None
        self._reader: _InputReader | None = None
        self._pending: list[str] = []
        if write_log_path is None:
            write_log_path = os.environ.get("PI_SCREEN_WRITE_LOG", "")
        self._write_log_path = write_log_path

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enable raw mode, install the resize handler and start reading stdin."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        if threading.current_thread() is threading.main_thread():
            self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
            signal.signal(signal.SIGWINCH, self._on_sigwinch)

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        def read() -> str | None:
            ready, _, _ = select.select([fd], [], [], _POLL_INTERVAL)
            if not ready:
                return None
            raw = os.read(fd, 4096)
            if not raw:
                return ""
            # A split multi-byte character decodes to "" until completed.
            return decoder.decode(raw) or None

        self._reader = _InputReader(read, self._on_input, "pi-screen-stdin")
        self._reader.start()

    def stop(self) -> None:
        """Stop reading and restore the terminal state."""
        if self._reader is not None:
            self._reader.stop()
            self._reader = None

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        if self._original_termios is not None:
            try:
                termios.tcsetattr(
                    sys.stdin.fileno(), termios.TCSADRAIN, self._original_termios
                )
            except (termios.error, ValueError, OSError) as exc:
                logger.debug("Could not restore terminal attributes: %s", exc)
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        self._pending.append(data)

    def flush(self) -> None:
        """Write buffered output to stdout and optionally to the write log."""
        if not self._pending:
            return
        data = "".join(self._pending)
        self._pending.clear()
        sys.stdout.write(data)
        sys.stdout.flush()
        if self._write_log_path:
            _append_write_log(self._write_log_path, data)

    # -- callbacks ----------------------------------------------------------

    def _on_input(self, data: str) -> None:
        handler = self._input_handler
        if handler is not None:
            handler(data)

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        handler = self._resize_handler
        if handler is not None:
            handler()
