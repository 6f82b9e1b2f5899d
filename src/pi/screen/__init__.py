"""pi-screen: double-buffered cell screens for terminals and pixel surfaces."""

# Backends
from pi.screen.backend import (
    Backend,
    BackendState,
    GenericBackend,
    HeadlessBackend,
    wait_for_events,
)

# Cells
from pi.screen.cell import Cell, CellAttributes, Color

# Terminal-stream backend
from pi.screen.ecma48 import ECMA48Backend, ECMA48Screen

# Event queue
from pi.screen.event_queue import EventQueue

# Events
from pi.screen.events import (
    CMD_EXIT,
    CMD_REPAINT,
    CommandEvent,
    EventKind,
    InputEvent,
    KeypressEvent,
    MouseEvent,
    MouseType,
    ResizeEvent,
    ResizeType,
)

# Glyph rendering
from pi.screen.glyphs import (
    FontChain,
    FontRange,
    GlyphCache,
    GlyphCacheSet,
    PillowRasterizer,
    Rasterizer,
    classify_codepoint,
)
from pi.screen.grid import CellGrid

# Input decoding
from pi.screen.input_decoder import InputDecoder

# Composition
from pi.screen.multi import MultiBackend, MultiScreen
from pi.screen.nested import NestedScreenBackend

# Pixel-surface backend
from pi.screen.pixel import ImageSurface, PixelBackend, PixelScreen, Surface

# Screens
from pi.screen.screen import BlinkClock, CursorStyle, LogicalScreen, Region, Screen

# Sessions
from pi.screen.session import SessionInfo, TSessionInfo, TTYSessionInfo

# Configuration
from pi.screen.settings import ScreenSettings

# Terminal transports
from pi.screen.terminal import ProcessTerminal, StreamTerminal, Terminal

__all__ = [
    # Backends
    "Backend",
    "BackendState",
    "GenericBackend",
    "HeadlessBackend",
    "wait_for_events",
    # Cells
    "Cell",
    "CellAttributes",
    "CellGrid",
    "Color",
    # Terminal-stream backend
    "ECMA48Backend",
    "ECMA48Screen",
    "InputDecoder",
    "ProcessTerminal",
    "StreamTerminal",
    "Terminal",
    # Events
    "CMD_EXIT",
    "CMD_REPAINT",
    "CommandEvent",
    "EventKind",
    "EventQueue",
    "InputEvent",
    "KeypressEvent",
    "MouseEvent",
    "MouseType",
    "ResizeEvent",
    "ResizeType",
    # Glyph rendering
    "FontChain",
    "FontRange",
    "GlyphCache",
    "GlyphCacheSet",
    "PillowRasterizer",
    "Rasterizer",
    "classify_codepoint",
    # Composition
    "MultiBackend",
    "MultiScreen",
    "NestedScreenBackend",
    # Pixel-surface backend
    "ImageSurface",
    "PixelBackend",
    "PixelScreen",
    "Surface",
    # Screens
    "BlinkClock",
    "CursorStyle",
    "LogicalScreen",
    "Region",
    "Screen",
    # Sessions and configuration
    "ScreenSettings",
    "SessionInfo",
    "TSessionInfo",
    "TTYSessionInfo",
]
