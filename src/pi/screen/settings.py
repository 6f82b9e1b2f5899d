"""Runtime options read from ``PI_SCREEN_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

ENV_PREFIX = "PI_SCREEN_"

DEFAULT_BLINK_MILLIS = 500
DEFAULT_FONT_SIZE = 16

_CURSOR_STYLES = ("underline", "block", "outline")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class ScreenSettings:
    """Display options shared by every backend.

    ``blink_millis`` of zero or less disables blinking; ``cursor_style`` is
    one of ``"underline"``, ``"block"`` or ``"outline"``.
    """

    blink_millis: int = DEFAULT_BLINK_MILLIS
    cursor_style: str = "underline"
    font_path: str | None = None
    font_size: int = DEFAULT_FONT_SIZE
    mouse: bool = True
    write_log_path: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ScreenSettings:
        """Build settings from *env* (defaults to ``os.environ``).

        Unparseable values fall back to the defaults.
        """
        if env is None:
            env = os.environ

        cursor_style = env.get(ENV_PREFIX + "CURSOR_STYLE", "").strip().lower()
        if cursor_style not in _CURSOR_STYLES:
            cursor_style = "underline"

        font_size = _env_int(env, "FONT_SIZE", DEFAULT_FONT_SIZE)
        if font_size <= 0:
            font_size = DEFAULT_FONT_SIZE

        return cls(
            blink_millis=_env_int(env, "BLINK_MS", DEFAULT_BLINK_MILLIS),
            cursor_style=cursor_style,
            font_path=env.get(ENV_PREFIX + "FONT") or None,
            font_size=font_size,
            mouse=env.get(ENV_PREFIX + "MOUSE", "1") != "0",
            write_log_path=env.get(ENV_PREFIX + "WRITE_LOG", ""),
        )
