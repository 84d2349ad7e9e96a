"""
ANSI styling helpers for the termi screens.

- Color output only when supported (TTY and NO_COLOR not set)
- One helper per visual role: title, selected row, faint help text, errors
"""

from __future__ import annotations

import os
import sys


def _supports_color(stream) -> bool:
    if os.getenv("NO_COLOR") is not None:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


_COLOR_ENABLED = _supports_color(sys.stdout)


def set_color(enabled: bool) -> None:
    global _COLOR_ENABLED
    _COLOR_ENABLED = enabled


class SGR:
    RESET = "\x1b[0m"
    BOLD = "\x1b[1m"
    FAINT = "\x1b[2m"
    ITALIC = "\x1b[3m"
    # 256-color palette
    PURPLE = "\x1b[38;5;99m"
    PINK = "\x1b[38;5;212m"
    RED = "\x1b[38;5;196m"
    GREEN = "\x1b[38;5;46m"
    BLUE = "\x1b[38;5;69m"
    GRAY = "\x1b[38;5;8m"


SPINNER = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")


def style(text: str, *codes: str) -> str:
    if not _COLOR_ENABLED or not text:
        return text
    return "".join(codes) + text + SGR.RESET


def title(text: str) -> str:
    return style(text, SGR.BOLD, SGR.PURPLE)


def selected(text: str) -> str:
    return style(text, SGR.BOLD, SGR.PINK)


def faint(text: str) -> str:
    return style(text, SGR.FAINT)


def italic(text: str) -> str:
    return style(text, SGR.ITALIC)


def tag(text: str) -> str:
    return style(f"[{text}]", SGR.FAINT, SGR.GRAY)


def error(text: str) -> str:
    return style(text, SGR.RED)


def success(text: str) -> str:
    return style(text, SGR.GREEN)


def spinner(frame: int) -> str:
    return style(SPINNER[frame % len(SPINNER)], SGR.BLUE)


__all__ = [
    "SGR",
    "set_color",
    "style",
    "title",
    "selected",
    "faint",
    "italic",
    "tag",
    "error",
    "success",
    "spinner",
]
