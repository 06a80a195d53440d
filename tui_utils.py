#!/usr/bin/env python3
"""Small curses forms shared by the picker and the runner."""
from __future__ import annotations

import curses
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from errors import UserCancelled
from keybindings import ESC, KEYS
from tui_base import Theme, draw_box, fill_rect, safe_addnstr, truncate

T = TypeVar("T")


class FormState(Enum):
    RUNNING = "running"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FormOption(Generic[T]):
    label: str
    value: T


class SelectForm(Generic[T]):
    """Single-choice list, optionally followed by a yes/no confirmation.

    - Up/Down: move
    - Enter: pick (moves to the confirmation when there is one)
    - Tab/Shift+Tab: switch between list and confirmation
    - Left/Right, y/n: answer the confirmation
    - Esc/q/Ctrl+C: cancel
    """

    def __init__(
        self,
        title: str,
        options: Sequence[FormOption[T]],
        *,
        confirm_title: Optional[str] = None,
        confirm_default: bool = True,
    ) -> None:
        if not options:
            raise ValueError("options cannot be empty")
        self.title = title
        self.options = list(options)
        self.confirm_title = confirm_title
        self.confirmed = confirm_default if confirm_title else True
        self.index = 0
        self.focus_confirm = False
        self.state = FormState.RUNNING

    @property
    def value(self) -> T:
        return self.options[self.index].value

    def _submit(self) -> FormState:
        self.state = FormState.SUBMITTED
        return self.state

    def handle_key(self, key: int) -> FormState:
        if self.state is not FormState.RUNNING:
            return self.state
        if key in KEYS.QUIT or key == ESC:
            self.state = FormState.CANCELLED
            return self.state

        if self.focus_confirm:
            if key in KEYS.YES:
                self.confirmed = True
                return self._submit()
            if key in KEYS.NO:
                self.confirmed = False
                return self._submit()
            if key in KEYS.NAV_LEFT or key in KEYS.NAV_RIGHT:
                self.confirmed = not self.confirmed
            elif key in KEYS.CONFIRM:
                return self._submit()
            elif key in KEYS.PREV_TAB or key == 9 or key in KEYS.NAV_UP:
                self.focus_confirm = False
            return self.state

        if key in KEYS.NAV_UP:
            self.index = max(0, self.index - 1)
        elif key in KEYS.NAV_DOWN:
            self.index = min(len(self.options) - 1, self.index + 1)
        elif key in KEYS.HOME:
            self.index = 0
        elif key in KEYS.END:
            self.index = len(self.options) - 1
        elif key in KEYS.CONFIRM:
            if self.confirm_title:
                self.focus_confirm = True
            else:
                return self._submit()
        elif key == 9 and self.confirm_title:
            self.focus_confirm = True
        return self.state


def _safe_curs_set(visibility: int) -> None:
    try:
        curses.curs_set(visibility)
    except curses.error:
        pass


def draw_form(stdscr: "curses._CursesWindow", form: SelectForm, theme: Theme) -> None:
    stdscr.erase()
    h, w = stdscr.getmaxyx()
    width = min(max(40, max(len(o.label) for o in form.options) + 8, len(form.title) + 6), max(10, w - 2))
    rows = max(1, h - 8)
    visible = min(len(form.options), rows)
    height = visible + 4 + (3 if form.confirm_title else 0)
    top = max(0, (h - height) // 2)
    left = max(0, (w - width) // 2)
    fill_rect(stdscr, top, left, height, width)
    draw_box(stdscr, top, left, height, width, theme.border)
    inner = width - 4
    safe_addnstr(stdscr, top + 1, left + 2, truncate(f" {form.title} ", inner), inner, theme.title)

    offset = 0
    if form.index >= visible:
        offset = form.index - visible + 1
    for row, option in enumerate(form.options[offset : offset + visible]):
        idx = offset + row
        selected = idx == form.index
        marker = "> " if selected else "  "
        attr = theme.highlight if selected and not form.focus_confirm else theme.normal
        safe_addnstr(stdscr, top + 3 + row, left + 2, truncate(marker + option.label, inner), inner, attr)

    if form.confirm_title:
        y = top + 3 + visible + 1
        safe_addnstr(stdscr, y, left + 2, truncate(form.confirm_title, inner), inner, theme.normal)
        yes_attr = theme.status if form.confirmed else theme.dim
        no_attr = theme.status if not form.confirmed else theme.dim
        if form.focus_confirm:
            yes_attr |= curses.A_UNDERLINE if form.confirmed else 0
            no_attr |= curses.A_UNDERLINE if not form.confirmed else 0
        safe_addnstr(stdscr, y + 1, left + 4, " Yes ", 5, yes_attr)
        safe_addnstr(stdscr, y + 1, left + 11, " No ", 4, no_attr)

    hint = "↑/↓: choose • enter: pick • esc: cancel"
    if form.confirm_title:
        hint = "↑/↓: choose • enter: next • ←/→ or y/n: confirm • esc: cancel"
    safe_addnstr(stdscr, min(h - 1, top + height), left + 1, truncate(hint, width - 2), width - 2, theme.dim)
    stdscr.refresh()


def run_select_form(stdscr: "curses._CursesWindow", form: SelectForm, theme: Optional[Theme] = None) -> SelectForm:
    theme = theme or Theme.from_curses()
    _safe_curs_set(0)
    stdscr.keypad(True)
    while form.state is FormState.RUNNING:
        draw_form(stdscr, form, theme)
        try:
            key = stdscr.getch()
        except KeyboardInterrupt:
            form.state = FormState.CANCELLED
            break
        if key == curses.KEY_RESIZE:
            continue
        form.handle_key(key)
    return form


def prompt_select(
    title: str,
    options: Sequence[FormOption[T]],
    *,
    confirm_title: Optional[str] = None,
) -> Tuple[T, bool]:
    """Run a :class:`SelectForm` full-screen and return ``(value, confirmed)``."""
    form: SelectForm[T] = SelectForm(title, options, confirm_title=confirm_title)
    curses.wrapper(lambda stdscr: run_select_form(stdscr, form))
    if form.state is FormState.CANCELLED:
        raise UserCancelled("user cancelled the form")
    return form.value, form.confirmed


def labelled(values: Sequence[T], labels: Optional[Sequence[str]] = None) -> List[FormOption[T]]:
    labels = labels or [str(getattr(v, "value", v)) for v in values]
    return [FormOption(label, value) for label, value in zip(labels, values)]
