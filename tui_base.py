from __future__ import annotations

import curses
import logging
import textwrap
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from errors import ErrorSeverity, OllamanagerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Theme:
    """Curses attributes for every named style, built once per screen."""

    normal: int = 0
    title: int = 0
    dim: int = 0
    badge: int = 0
    status: int = 0
    error: int = 0
    highlight: int = 0
    border: int = 0
    key: int = 0
    success: int = 0

    def attr(self, name: str) -> int:
        return getattr(self, name, self.normal)

    @classmethod
    def plain(cls) -> "Theme":
        return cls()

    @classmethod
    def from_curses(cls) -> "Theme":
        """Initialise colour pairs; call after ``curses.initscr``."""
        try:
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(1, curses.COLOR_WHITE, curses.COLOR_MAGENTA)
            curses.init_pair(2, curses.COLOR_RED, -1)
            curses.init_pair(3, curses.COLOR_CYAN, -1)
            curses.init_pair(4, curses.COLOR_GREEN, -1)
            curses.init_pair(5, curses.COLOR_BLACK, curses.COLOR_WHITE)
            colors = True
        except curses.error:
            colors = False

        def pair(n: int) -> int:
            return curses.color_pair(n) if colors else 0

        return cls(
            normal=curses.A_NORMAL,
            title=curses.A_BOLD | pair(1),
            dim=curses.A_DIM,
            badge=pair(5),
            status=curses.A_BOLD | pair(1),
            error=curses.A_BOLD | pair(2),
            highlight=curses.A_REVERSE,
            border=pair(3),
            key=curses.A_BOLD | pair(4),
            success=pair(4),
        )


def safe_addnstr(win: "curses._CursesWindow", y: int, x: int, text: str, width: int, attr: int = 0) -> None:
    if width <= 0 or y < 0 or x < 0:
        return
    try:
        win.addnstr(y, x, text, width, attr)
    except curses.error:
        # Writing the bottom-right cell raises after the text is drawn.
        pass


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 1:
        return text[:width]
    return text[: width - 1] + "…"


def wrap_lines(text: str, width: int) -> List[str]:
    if not text:
        return []
    return textwrap.wrap(text, max(1, width), break_long_words=True) or [""]


def format_scroll_indicator(first_index: int, total: int, visible_rows: int) -> str:
    if total <= 0 or visible_rows <= 0:
        return ""
    if total <= visible_rows:
        return ""
    current = max(1, min(total, first_index + 1))
    return f"[{current}/{total}]"


def draw_scrollbar(
    win: "curses._CursesWindow",
    *,
    top: int,
    height: int,
    x: int,
    first_index: int,
    total: int,
    visible_rows: int,
    attr: int,
) -> None:
    if total <= visible_rows or height <= 0:
        return
    max_scroll = max(1, total - visible_rows)
    track_height = max(1, height)
    thumb_pos = int((min(first_index, max_scroll) / max_scroll) * (track_height - 1))
    for row in range(track_height):
        ch = "o" if row == thumb_pos else "|"
        try:
            win.addch(top + row, x, ch, attr)
        except curses.error:
            break


def draw_box(
    win: "curses._CursesWindow",
    top: int,
    left: int,
    height: int,
    width: int,
    attr: int = 0,
) -> None:
    if height < 2 or width < 2:
        return
    bottom = top + height - 1
    right = left + width - 1
    safe_addnstr(win, top, left, "╭" + "─" * (width - 2) + "╮", width, attr)
    safe_addnstr(win, bottom, left, "╰" + "─" * (width - 2) + "╯", width, attr)
    for row in range(top + 1, bottom):
        safe_addnstr(win, row, left, "│", 1, attr)
        safe_addnstr(win, row, right, "│", 1, attr)


def fill_rect(win: "curses._CursesWindow", top: int, left: int, height: int, width: int) -> None:
    blank = " " * max(0, width)
    for row in range(top, top + height):
        safe_addnstr(win, row, left, blank, width)


def draw_styled_lines(
    win: "curses._CursesWindow",
    lines: Sequence[Tuple[str, str]],
    theme: Theme,
    *,
    top: int,
    left: int,
    width: int,
    height: int,
    center: bool = False,
) -> int:
    """Draw ``(text, style name)`` pairs, returning the number of rows used."""
    row = 0
    for text, style in lines[: max(0, height)]:
        shown = truncate(text, width)
        x = left + max(0, (width - len(shown)) // 2) if center else left
        safe_addnstr(win, top + row, x, shown, width, theme.attr(style))
        row += 1
    return row


def draw_log_lines(
    win: "curses._CursesWindow",
    lines: Iterable[str],
    theme: Theme,
    *,
    top: int,
    left: int,
    width: int,
    height: int,
    marker: str = "✓ ",
) -> int:
    """Draw the tail of ``lines`` that fits in ``height`` rows."""
    entries = list(lines)
    if height <= 0 or not entries:
        return 0
    visible = entries[-height:]
    for idx, line in enumerate(visible):
        safe_addnstr(win, top + idx, left, marker, len(marker), theme.success)
        safe_addnstr(win, top + idx, left + len(marker), truncate(line, width - len(marker)), width - len(marker), theme.dim)
    return len(visible)


def banner(label: str, message: str) -> str:
    return f"[{label.upper()}] {message}"


def handle_error(error: OllamanagerError) -> str:
    label = "error" if error.severity == ErrorSeverity.ERROR else error.severity.value
    text = banner(label, error.message)
    if error.severity == ErrorSeverity.WARNING:
        logger.info(text)
    else:
        logger.error(text)
    return text
