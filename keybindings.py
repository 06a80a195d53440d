from __future__ import annotations

import curses
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from model_types import ManageAction

CTRL_C = 3
ESC = 27


@dataclass(frozen=True)
class Keybindings:
    QUIT = (ord("q"), CTRL_C)
    TOGGLE_HELP = (ord("?"),)
    CONFIRM = (curses.KEY_ENTER, ord("\n"), ord("\r"))
    FILTER = (ord("/"),)
    BACKSPACE = (curses.KEY_BACKSPACE, 127, 8)

    NEXT_TAB = (9, ord("n"))
    PREV_TAB = (curses.KEY_BTAB, ord("p"))

    NAV_UP = (curses.KEY_UP, ord("k"))
    NAV_DOWN = (curses.KEY_DOWN, ord("j"))
    NAV_LEFT = (curses.KEY_LEFT, ord("h"))
    NAV_RIGHT = (curses.KEY_RIGHT, ord("l"))

    PAGE_UP = (curses.KEY_PPAGE,)
    PAGE_DOWN = (curses.KEY_NPAGE,)
    HOME = (curses.KEY_HOME, ord("g"))
    END = (curses.KEY_END, ord("G"))

    YES = (ord("y"), ord("Y"))
    NO = (ord("n"), ord("N"))


KEYS = Keybindings()


def shortcut_action(key: int, approved: Iterable[ManageAction]) -> Optional[ManageAction]:
    """Return the approved manage action bound to ``key``, if any."""
    for action in approved:
        if key == ord(action.shortcut):
            return action
    return None


def help_entries(
    tab_count: int,
    *,
    manage_active: bool = False,
    approved: Sequence[ManageAction] = (),
) -> List[Tuple[str, str]]:
    entries: List[Tuple[str, str]] = [
        ("↑/k", "move up"),
        ("↓/j", "move down"),
        ("←/h", "previous page"),
        ("→/l", "next page"),
        ("enter", "pick selected item"),
        ("/", "filter/fuzzy find items"),
        ("esc", "clear filter"),
        ("q/ctrl+c", "quit"),
    ]
    if tab_count > 1:
        entries.append(("n/tab", "switch to the next tab"))
        entries.append(("p/shift+tab", "switch to the previous tab"))
    if manage_active:
        for action in approved:
            entries.append((action.shortcut, action.value))
    return entries
