"""Thread-safe hand-off of input events from producers to one consumer.

Input threads (keyboard reader, mouse/window listeners) ``put`` events;
the application thread polls ``has_events`` and drains with ``drain_into``.
After every put the registered *listener* is woken up.  A listener may be:

* a ``threading.Condition`` -- ``notify_all()`` is called under its lock,
* a ``threading.Event`` -- it is ``set()``,
* any other callable -- it is called with no arguments.

Wake-ups may be missed when the listener is swapped concurrently, but
events never are: they stay queued until the next drain.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Iterable, MutableSequence

from pi.screen.events import InputEvent


def notify_listener(listener: object | None) -> None:
    """Wake up whoever waits on *listener*."""
    if listener is None:
        return
    notify_all = getattr(listener, "notify_all", None)
    if callable(notify_all):
        with listener:  # type: ignore[attr-defined]
            notify_all()
        return
    set_flag = getattr(listener, "set", None)
    if callable(set_flag):
        set_flag()
        return
    if callable(listener):
        listener()


class EventQueue:
    """A lock-protected FIFO of ``InputEvent`` objects."""

    def __init__(self, listener: object | None = None) -> None:
        self._lock = threading.Lock()
        self._events: deque[InputEvent] = deque()
        self._listener = listener
        self._closed = False

    @property
    def listener(self) -> object | None:
        return self._listener

    def set_listener(self, listener: object | None) -> None:
        # A plain attribute swap is atomic; producers read it once per put.
        self._listener = listener

    def put(self, event: InputEvent) -> None:
        """Enqueue one event and wake the listener."""
        with self._lock:
            if self._closed:
                return
            self._events.append(event)
        notify_listener(self._listener)

    def put_all(self, events: Iterable[InputEvent]) -> None:
        """Enqueue several events in order with a single wake-up."""
        added = False
        with self._lock:
            if self._closed:
                return
            for event in events:
                self._events.append(event)
                added = True
        if added:
            notify_listener(self._listener)

    def has_events(self) -> bool:
        with self._lock:
            return len(self._events) > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def drain_into(self, queue: MutableSequence[InputEvent]) -> int:
        """Move every queued event to the end of *queue*, preserving order.

        Returns the number of events moved.
        """
        with self._lock:
            if not self._events:
                return 0
            events = list(self._events)
            self._events.clear()
        queue.extend(events)
        return len(events)

    def close(self) -> None:
        """Stop accepting events.  Already queued events can still be drained."""
        with self._lock:
            self._closed = True
