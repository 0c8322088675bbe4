"""ANSI styling for error output.

Colours are used only when stdout is a TTY. ``NO_COLOR`` disables them and
``FORCE_COLOR`` forces them on (https://no-color.org/).
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

Style = Literal["bold", "dim", "red", "green", "yellow", "cyan", "bright_red", "bright_green"]

_CODES: dict[str, str] = {
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
}
_RESET = "\033[0m"
_ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def _detect() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


_USE_COLORS = _detect()


def supports_color() -> bool:
    return _USE_COLORS


def style(text: str, *styles: Style) -> str:
    """Wrap ``text`` in the given ANSI styles (no-op without colour support)."""
    if not _USE_COLORS or not styles:
        return text
    return "".join(_CODES[s] for s in styles) + text + _RESET


def strip_colors(text: str) -> str:
    return _ANSI_RE.sub("", text)


def error_code(text: str) -> str:
    return style(text, "bright_red", "bold")


def location(text: str) -> str:
    return style(text, "cyan")


def hint(text: str) -> str:
    return style(text, "green")


def suggestion(text: str) -> str:
    return style(text, "bright_green", "bold")


def dim_text(text: str) -> str:
    return style(text, "dim")


def format_error_header(code: str | None, message: str) -> str:
    """Prefix ``message`` with a highlighted error code when one is given."""
    if code:
        return f"{error_code(code)}: {message}"
    return message


def format_source_line(lineno: int, content: str, *, is_error: bool = False) -> str:
    """Format one numbered source line; the error line gets a ``>`` marker."""
    marker = ">" if is_error else " "
    number = style(f"{marker}{lineno:>3}", "yellow")
    body = style(content, "bright_red") if is_error else dim_text(content)
    return f"{number} | {body}"
