"""Turn raw terminal input into ``KeypressEvent`` / ``MouseEvent`` objects.

Terminal input arrives in arbitrary chunks; an escape sequence may be
split across reads.  ``InputDecoder`` buffers partial sequences, splits
the buffer into complete sequences and decodes each one.  A lone ESC is
ambiguous (the Escape key, or the start of a sequence still in flight),
so it is only reported once ``ESC_TIMEOUT`` seconds pass without more
input; the owner polls :meth:`InputDecoder.idle_events` for that.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from pi.screen.events import InputEvent, KeypressEvent, MouseEvent, MouseType

logger = logging.getLogger(__name__)

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

ESC_TIMEOUT = 0.1

_SGR_MOUSE_RE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")
_CSI_RE = re.compile(r"^\x1b\[([0-9;]*)([A-Za-z~])$")

# CSI <final> and SS3 <final> keys.
_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "E": "clear",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# CSI <n> ~ keys.
_TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    7: "home",
    8: "end",
    11: "f1",
    12: "f2",
    13: "f3",
    14: "f4",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}


# ---------------------------------------------------------------------------
# Sequence splitting
# ---------------------------------------------------------------------------


def _sequence_status(data: str) -> str:
    """Return ``"complete"`` or ``"incomplete"`` for an ESC-prefixed string."""
    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    if after_esc.startswith("["):
        if after_esc.startswith("[M"):
            # X10 mouse: ESC [ M b x y
            return "complete" if len(data) >= 6 else "incomplete"
        if len(data) < 3:
            return "incomplete"
        if 0x40 <= ord(data[-1]) <= 0x7E:
            if after_esc.startswith("[<") and data[-1] not in "Mm":
                return "incomplete"
            return "complete"
        return "incomplete"

    if after_esc.startswith("]"):
        if data.endswith(f"{ESC}\\") or data.endswith("\x07"):
            return "complete"
        return "incomplete"

    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    return "complete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences.

    Returns ``(sequences, remainder)``; the remainder is an unfinished
    escape sequence to keep for the next chunk.
    """
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        remaining = buffer[pos:]
        if not remaining.startswith(ESC):
            sequences.append(remaining[0])
            pos += 1
            continue

        end = 1
        while end <= len(remaining):
            if _sequence_status(remaining[:end]) == "complete":
                break
            end += 1
        else:
            return sequences, remaining

        sequences.append(remaining[:end])
        pos += end

    return sequences, ""


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _modifiers(param: int) -> tuple[bool, bool, bool]:
    """xterm modifier parameter -> ``(alt, ctrl, shift)``."""
    bits = max(0, param - 1)
    return bool(bits & 2 or bits & 8), bool(bits & 4), bool(bits & 1)


def _decode_char(ch: str, alt: bool = False) -> KeypressEvent:
    if ch in ("\r", "\n"):
        return KeypressEvent(key="enter", alt=alt)
    if ch == "\t":
        return KeypressEvent(key="tab", alt=alt)
    if ch in ("\x7f", "\x08"):
        return KeypressEvent(key="backspace", alt=alt)
    if ch == ESC:
        return KeypressEvent(key="escape", alt=alt)
    if ch == "\x00":
        return KeypressEvent(char=" ", ctrl=True, alt=alt)
    code = ord(ch)
    if code <= 0x1A:
        return KeypressEvent(char=chr(code + 0x60), ctrl=True, alt=alt)
    if code < 0x20:
        return KeypressEvent(char=chr(code + 0x40), ctrl=True, alt=alt)
    return KeypressEvent(char=ch, alt=alt)


def _mouse_event(button: int, x: int, y: int, release: bool) -> MouseEvent:
    """Build a mouse event from an xterm button code and 0-based cell."""
    event = MouseEvent(
        x=x,
        y=y,
        absolute_x=x,
        absolute_y=y,
        shift=bool(button & 4),
        alt=bool(button & 8),
        ctrl=bool(button & 16),
    )
    low = button & 3
    if button & 64:
        event.type = MouseType.MOUSE_DOWN
        if low == 0:
            event.mouse_wheel_up = True
        elif low == 1:
            event.mouse_wheel_down = True
        return event

    if low == 0:
        event.mouse1 = True
    elif low == 1:
        event.mouse2 = True
    elif low == 2:
        event.mouse3 = True

    if button & 32:
        event.type = MouseType.MOUSE_MOTION
    elif release or low == 3:
        event.type = MouseType.MOUSE_UP
    else:
        event.type = MouseType.MOUSE_DOWN
    return event


def decode_sequence(seq: str) -> InputEvent | None:
    """Decode one complete sequence from :func:`split_sequences`.

    Returns ``None`` for sequences that carry no input (unknown CSI
    replies, OSC strings).
    """
    if not seq:
        return None
    if not seq.startswith(ESC) or seq == ESC:
        return _decode_char(seq)

    match = _SGR_MOUSE_RE.match(seq)
    if match:
        button, x, y, final = match.groups()
        return _mouse_event(int(button), int(x) - 1, int(y) - 1, final == "m")

    if seq.startswith("\x1b[M") and len(seq) == 6:
        button = ord(seq[3]) - 32
        return _mouse_event(button, ord(seq[4]) - 33, ord(seq[5]) - 33, False)

    if seq.startswith("\x1bO") and len(seq) == 3:
        key = _LETTER_KEYS.get(seq[2])
        return KeypressEvent(key=key) if key else None

    match = _CSI_RE.match(seq)
    if match:
        params = [int(p) if p else 0 for p in match.group(1).split(";")]
        final = match.group(2)
        mod = params[1] if len(params) > 1 else 1
        alt, ctrl, shift = _modifiers(mod)
        if final == "~":
            key = _TILDE_KEYS.get(params[0])
        elif final == "Z":
            return KeypressEvent(key="tab", shift=True)
        else:
            key = _LETTER_KEYS.get(final)
        if key is None:
            logger.debug("Ignoring unknown CSI sequence %r", seq)
            return None
        return KeypressEvent(key=key, alt=alt, ctrl=ctrl, shift=shift)

    if len(seq) == 2:
        # Meta: ESC followed by one character.
        return _decode_char(seq[1], alt=True)

    logger.debug("Ignoring unknown sequence %r", seq)
    return None


# ---------------------------------------------------------------------------
# InputDecoder
# ---------------------------------------------------------------------------


class InputDecoder:
    """Stateful decoder fed with chunks of terminal input.

    Not thread-safe; the owning backend serializes :meth:`feed` and
    :meth:`idle_events`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""
        self._last_input = clock()

    @property
    def pending(self) -> str:
        return self._buffer

    @property
    def in_paste(self) -> bool:
        return self._paste_mode

    def reset(self) -> None:
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""

    def feed(self, data: str) -> list[InputEvent]:
        """Add *data* and return every event it completes."""
        self._last_input = self._clock()
        events: list[InputEvent] = []
        self._process(data, events)
        return events

    def idle_events(self, now: float | None = None) -> list[InputEvent]:
        """Flush a stale partial sequence once input has gone quiet.

        A lone ESC becomes the Escape key; anything longer is decoded as
        far as possible.
        """
        if not self._buffer or self._paste_mode:
            return []
        if now is None:
            now = self._clock()
        if now - self._last_input < ESC_TIMEOUT:
            return []
        stale, self._buffer = self._buffer, ""
        events: list[InputEvent] = []
        for ch in (stale,) if len(stale) <= 2 else stale:
            event = decode_sequence(ch)
            if event is not None:
                events.append(event)
        return events

    def _process(self, data: str, events: list[InputEvent]) -> None:
        self._buffer += data

        if self._paste_mode:
            self._paste_buffer += self._buffer
            self._buffer = ""
            self._finish_paste(events)
            return

        start = self._buffer.find(BRACKETED_PASTE_START)
        if start != -1:
            before = self._buffer[:start]
            sequences, _ = split_sequences(before)
            self._decode_all(sequences, events)

            self._paste_mode = True
            self._paste_buffer = self._buffer[start + len(BRACKETED_PASTE_START) :]
            self._buffer = ""
            self._finish_paste(events)
            return

        sequences, self._buffer = split_sequences(self._buffer)
        self._decode_all(sequences, events)

    def _finish_paste(self, events: list[InputEvent]) -> None:
        end = self._paste_buffer.find(BRACKETED_PASTE_END)
        if end == -1:
            return
        pasted = self._paste_buffer[:end]
        remaining = self._paste_buffer[end + len(BRACKETED_PASTE_END) :]
        self._paste_mode = False
        self._paste_buffer = ""

        for ch in pasted:
            events.append(_decode_char(ch))
        if remaining:
            self._process(remaining, events)

    @staticmethod
    def _decode_all(sequences: list[str], events: list[InputEvent]) -> None:
        for seq in sequences:
            event = decode_sequence(seq)
            if event is not None:
                events.append(event)
