"""Tests for pi.screen.input_decoder."""

from __future__ import annotations

import pytest

from pi.screen.events import KeypressEvent, MouseEvent, MouseType
from pi.screen.input_decoder import InputDecoder, decode_sequence, split_sequences

from .fakes import ManualClock


def key(seq: str) -> KeypressEvent:
    event = decode_sequence(seq)
    assert isinstance(event, KeypressEvent), seq
    return event


def mouse(seq: str) -> MouseEvent:
    event = decode_sequence(seq)
    assert isinstance(event, MouseEvent), seq
    return event


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


class TestSplitSequences:
    def test_plain_characters(self) -> None:
        assert split_sequences("abc") == (["a", "b", "c"], "")

    def test_complete_and_partial(self) -> None:
        assert split_sequences("ab\x1b[A\x1b[") == (["a", "b", "\x1b[A"], "\x1b[")

    def test_sgr_mouse_waits_for_final(self) -> None:
        assert split_sequences("\x1b[<0;10") == ([], "\x1b[<0;10")
        assert split_sequences("\x1b[<0;10;5M") == (["\x1b[<0;10;5M"], "")

    def test_x10_mouse_needs_three_bytes(self) -> None:
        assert split_sequences("\x1b[M ") == ([], "\x1b[M ")

    def test_osc(self) -> None:
        assert split_sequences("\x1b]0;hi\x07x") == (["\x1b]0;hi\x07", "x"], "")


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestKeys:
    def test_printable(self) -> None:
        event = key("a")
        assert (event.key, event.char, event.ctrl, event.alt) == ("", "a", False, False)

    @pytest.mark.parametrize(
        "seq, name",
        [
            ("\r", "enter"),
            ("\n", "enter"),
            ("\t", "tab"),
            ("\x7f", "backspace"),
            ("\x08", "backspace"),
            ("\x1b", "escape"),
            ("\x1b[A", "up"),
            ("\x1b[B", "down"),
            ("\x1b[C", "right"),
            ("\x1b[D", "left"),
            ("\x1b[H", "home"),
            ("\x1b[F", "end"),
            ("\x1bOP", "f1"),
            ("\x1bOA", "up"),
            ("\x1b[2~", "insert"),
            ("\x1b[3~", "delete"),
            ("\x1b[5~", "pageUp"),
            ("\x1b[6~", "pageDown"),
            ("\x1b[15~", "f5"),
            ("\x1b[24~", "f12"),
        ],
    )
    def test_named_keys(self, seq: str, name: str) -> None:
        assert key(seq).key == name

    def test_control_letters(self) -> None:
        event = key("\x01")
        assert (event.char, event.ctrl) == ("a", True)
        assert key("\x1a").char == "z"

    def test_control_punctuation(self) -> None:
        assert key("\x1c").char == "\\"
        assert key("\x00").char == " "
        assert key("\x00").ctrl

    def test_modifiers(self) -> None:
        shifted = key("\x1b[1;2A")
        assert (shifted.key, shifted.shift, shifted.alt, shifted.ctrl) == ("up", True, False, False)
        alt = key("\x1b[1;3D")
        assert (alt.key, alt.alt) == ("left", True)
        ctrl = key("\x1b[1;5C")
        assert (ctrl.key, ctrl.ctrl, ctrl.shift) == ("right", True, False)
        ctrl_shift = key("\x1b[3;6~")
        assert (ctrl_shift.key, ctrl_shift.ctrl, ctrl_shift.shift) == ("delete", True, True)

    def test_back_tab(self) -> None:
        event = key("\x1b[Z")
        assert (event.key, event.shift) == ("tab", True)

    def test_meta(self) -> None:
        event = key("\x1bx")
        assert (event.char, event.alt) == ("x", True)
        assert key("\x1b\r").key == "enter"
        assert key("\x1b\r").alt

    def test_unknown_sequences_ignored(self) -> None:
        assert decode_sequence("\x1b[99~") is None
        assert decode_sequence("\x1b[?1;2c") is None
        assert decode_sequence("\x1b]0;title\x07") is None
        assert decode_sequence("") is None


# ---------------------------------------------------------------------------
# Mouse
# ---------------------------------------------------------------------------


class TestMouse:
    def test_sgr_press_and_release(self) -> None:
        down = mouse("\x1b[<0;10;5M")
        assert (down.type, down.x, down.y, down.mouse1) == (MouseType.MOUSE_DOWN, 9, 4, True)
        assert (down.absolute_x, down.absolute_y) == (9, 4)
        up = mouse("\x1b[<0;10;5m")
        assert up.type is MouseType.MOUSE_UP

    def test_sgr_buttons(self) -> None:
        assert mouse("\x1b[<1;1;1M").mouse2
        assert mouse("\x1b[<2;1;1M").mouse3

    def test_motion(self) -> None:
        event = mouse("\x1b[<32;3;3M")
        assert event.type is MouseType.MOUSE_MOTION
        assert event.mouse1
        plain = mouse("\x1b[<35;3;3M")
        assert plain.type is MouseType.MOUSE_MOTION
        assert not (plain.mouse1 or plain.mouse2 or plain.mouse3)

    def test_wheel(self) -> None:
        up = mouse("\x1b[<64;1;1M")
        assert up.mouse_wheel_up and not up.mouse_wheel_down
        down = mouse("\x1b[<65;1;1M")
        assert down.mouse_wheel_down and not down.mouse_wheel_up

    def test_modifier_bits(self) -> None:
        event = mouse("\x1b[<28;1;1M")
        assert (event.shift, event.alt, event.ctrl) == (True, True, True)

    def test_x10(self) -> None:
        seq = "\x1b[M" + chr(32) + chr(33 + 9) + chr(33 + 4)
        event = mouse(seq)
        assert (event.type, event.x, event.y, event.mouse1) == (MouseType.MOUSE_DOWN, 9, 4, True)
        release = mouse("\x1b[M" + chr(32 + 3) + "!!")
        assert release.type is MouseType.MOUSE_UP


# ---------------------------------------------------------------------------
# Stateful decoder
# ---------------------------------------------------------------------------


class TestInputDecoder:
    def test_sequence_split_across_chunks(self) -> None:
        decoder = InputDecoder()
        assert decoder.feed("\x1b[") == []
        assert decoder.pending == "\x1b["
        events = decoder.feed("Ax")
        assert [(e.key, e.char) for e in events] == [("up", ""), ("", "x")]
        assert decoder.pending == ""

    def test_lone_escape_after_timeout(self) -> None:
        clock = ManualClock()
        decoder = InputDecoder(clock)
        assert decoder.feed("\x1b") == []
        clock.advance(0.05)
        assert decoder.idle_events() == []
        clock.advance(0.1)
        events = decoder.idle_events()
        assert [e.key for e in events] == ["escape"]
        assert decoder.pending == ""

    def test_escape_followed_by_sequence_is_not_escape(self) -> None:
        clock = ManualClock()
        decoder = InputDecoder(clock)
        decoder.feed("\x1b")
        clock.advance(0.01)
        events = decoder.feed("[B")
        assert [e.key for e in events] == ["down"]

    def test_stale_partial_sequence_decoded_per_char(self) -> None:
        clock = ManualClock()
        decoder = InputDecoder(clock)
        decoder.feed("\x1b[1;")
        clock.advance(1)
        events = decoder.idle_events()
        assert events[0].key == "escape"
        assert [e.char for e in events[1:]] == ["[", "1", ";"]

    def test_idle_with_nothing_pending(self) -> None:
        assert InputDecoder().idle_events() == []

    def test_bracketed_paste(self) -> None:
        decoder = InputDecoder()
        events = decoder.feed("a\x1b[200~h\ri\x1b[201~b")
        assert [(e.key, e.char) for e in events] == [
            ("", "a"),
            ("", "h"),
            ("enter", ""),
            ("", "i"),
            ("", "b"),
        ]
        assert not decoder.in_paste

    def test_paste_split_across_chunks(self) -> None:
        decoder = InputDecoder()
        assert decoder.feed("\x1b[200~ab") == []
        assert decoder.in_paste
        events = decoder.feed("c\x1b[201~\x1b[A")
        assert [e.char for e in events[:3]] == ["a", "b", "c"]
        assert events[3].key == "up"

    def test_escape_inside_paste_is_literal(self) -> None:
        decoder = InputDecoder()
        events = decoder.feed("\x1b[200~\x1b[A\x1b[201~")
        assert events[0].key == "escape"
        assert [e.char for e in events[1:]] == ["[", "A"]

    def test_reset(self) -> None:
        decoder = InputDecoder()
        decoder.feed("\x1b[200~abc")
        decoder.reset()
        assert not decoder.in_paste
        assert [e.char for e in decoder.feed("z")] == ["z"]
