"""In-memory ``pi.screen.terminal.Terminal`` used by the backend tests.

Writes are held until ``flush`` and then appended to ``output``; setting
``fail_writes`` makes the next flush raise like a hung-up pty.
"""

from __future__ import annotations

from typing import Callable


class VirtualTerminal:
    """Records flushed output; rows and columns change via ``simulate_resize``."""

    def __init__(self, rows: int = 24, columns: int = 80) -> None:
        self._rows = rows
        self._columns = columns
        self._pending: list[str] = []
        self._buffer: list[str] = []
        self._started = False
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self.flush_count = 0
        self.fail_writes = False

    # -- Terminal protocol: properties --------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def started(self) -> bool:
        return self._started

    # -- Terminal protocol: lifecycle ---------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        self._input_handler = on_input
        self._resize_handler = on_resize
        self._started = True

    def stop(self) -> None:
        self._started = False
        self._input_handler = None
        self._resize_handler = None

    # -- Terminal protocol: output ------------------------------------------

    def write(self, data: str) -> None:
        """Queue *data* until the next ``flush``."""
        self._pending.append(data)

    def flush(self) -> None:
        """Move queued output into the recorded buffer.

        Raises ``OSError`` while ``fail_writes`` is set, like a closed pty.
        """
        if self.fail_writes:
            self._pending.clear()
            raise OSError(5, "Input/output error")
        self.flush_count += 1
        self._buffer.extend(self._pending)
        self._pending.clear()

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        return "".join(self._buffer)

    def clear_buffer(self) -> None:
        self._buffer.clear()

    def simulate_input(self, data: str) -> None:
        """Deliver *data* as if typed; the terminal must be started."""
        if self._input_handler is None:
            raise RuntimeError("terminal not started")
        self._input_handler(data)

    def simulate_resize(self, rows: int | None = None, columns: int | None = None) -> None:
        """Apply the given dimensions and notify the resize callback."""
        if rows is not None:
            self._rows = rows
        if columns is not None:
            self._columns = columns
        if self._resize_handler is not None:
            self._resize_handler()
