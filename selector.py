"""Tabbed, filterable model selector.

The selector is a plain state machine driven by curses key codes: one key is
processed at a time by :meth:`ModelSelector.handle_key` and the machine ends
either ``CANCELLED`` or ``COMMITTED``. Rendering (:func:`draw_selector`) only
reads the state, which keeps every transition testable without a terminal.
"""
from __future__ import annotations

import curses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from constants import LAYOUT, SELECTOR_LAYOUT, UI, LayoutSizing
from keybindings import ESC, KEYS, help_entries, shortcut_action
from memory_utils import natural_time, split_summary
from model_types import ItemKind, Listable, ManageAction, SelectionContext, Tab
from tui_base import (
    Theme,
    draw_box,
    draw_scrollbar,
    draw_styled_lines,
    fill_rect,
    format_scroll_indicator,
    safe_addnstr,
    truncate,
    wrap_lines,
)

logger = logging.getLogger(__name__)

LIST_TITLES = {
    Tab.INSTALL: "Pick a Model to install...",
    Tab.MANAGE: "Pick an installed Model...",
    Tab.MONITOR: "Pick a running Model...",
}

# Title, status line and a spacer sit above the first item.
LIST_HEADER_ROWS = 3
TAB_ROW_HEIGHT = 2


class FilterState(Enum):
    UNFILTERED = "unfiltered"
    FILTERING = "filtering"
    APPLIED = "applied"


class Outcome(Enum):
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMMITTED = "committed"


def fuzzy_match(pattern: str, text: str) -> bool:
    """Case-insensitive subsequence match."""
    if not pattern:
        return True
    remaining = iter(text.lower())
    return all(ch in remaining for ch in pattern.lower())


class ModelList:
    """Single-select list with bubbles-style filtering and paging."""

    def __init__(self, title: str, items: Iterable[Listable] = ()) -> None:
        self.title = title
        self.items: List[Listable] = list(items)
        self.cursor = 0
        self.offset = 0
        self.filter_text = ""
        self.filter_state = FilterState.UNFILTERED
        self.width = 0
        self.height = 0

    @property
    def filtering(self) -> bool:
        return self.filter_state is FilterState.FILTERING

    def visible_items(self) -> List[Listable]:
        if self.filter_state is FilterState.UNFILTERED or not self.filter_text:
            return list(self.items)
        return [item for item in self.items if fuzzy_match(self.filter_text, item.filter_value())]

    def selected_item(self) -> Optional[Listable]:
        visible = self.visible_items()
        if not visible:
            return None
        return visible[min(self.cursor, len(visible) - 1)]

    def per_page(self) -> int:
        return max(1, (self.height - 2 - LIST_HEADER_ROWS) // UI.ITEM_HEIGHT)

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._clamp()

    def _clamp(self) -> None:
        count = len(self.visible_items())
        if count == 0:
            self.cursor = 0
            self.offset = 0
            return
        self.cursor = max(0, min(self.cursor, count - 1))
        page = self.per_page()
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + page:
            self.offset = self.cursor - page + 1
        self.offset = max(0, min(self.offset, max(0, count - page)))

    def move(self, delta: int) -> None:
        self.cursor += delta
        self._clamp()

    def clear_filter(self) -> None:
        self.filter_text = ""
        self.filter_state = FilterState.UNFILTERED
        self.cursor = 0
        self._clamp()

    def _handle_filter_key(self, key: int) -> None:
        if key == ESC:
            self.clear_filter()
        elif key in KEYS.CONFIRM:
            self.filter_state = FilterState.APPLIED if self.filter_text else FilterState.UNFILTERED
        elif key in KEYS.BACKSPACE:
            self.filter_text = self.filter_text[:-1]
            self.cursor = 0
        elif key == curses.KEY_UP:
            self.move(-1)
        elif key == curses.KEY_DOWN:
            self.move(1)
        elif 32 <= key <= 126:
            self.filter_text += chr(key)
            self.cursor = 0
        self._clamp()

    def handle_key(self, key: int) -> None:
        if self.filtering:
            self._handle_filter_key(key)
            return
        if key in KEYS.FILTER:
            self.filter_state = FilterState.FILTERING
            self.filter_text = ""
            self.cursor = 0
            self._clamp()
        elif key == ESC and self.filter_state is FilterState.APPLIED:
            self.clear_filter()
        elif key in KEYS.NAV_UP:
            self.move(-1)
        elif key in KEYS.NAV_DOWN:
            self.move(1)
        elif key in KEYS.NAV_LEFT or key in KEYS.PAGE_UP:
            self.move(-self.per_page())
        elif key in KEYS.NAV_RIGHT or key in KEYS.PAGE_DOWN:
            self.move(self.per_page())
        elif key in KEYS.HOME:
            self.cursor = 0
            self._clamp()
        elif key in KEYS.END:
            self.cursor = len(self.visible_items()) - 1
            self._clamp()


@dataclass(frozen=True)
class PaneLayout:
    width: int
    height: int
    list_width: int
    detail_width: int
    detail_visible: bool
    tab_row_height: int
    body_height: int


def compute_layout(width: int, height: int, tab_count: int, sizing: LayoutSizing = SELECTOR_LAYOUT) -> PaneLayout:
    usable_width = max(1, width - 2 * sizing.margin)
    # One row is reserved for the key hint footer.
    usable_height = max(1, height - 2 * sizing.margin - 1)
    tab_row = TAB_ROW_HEIGHT if tab_count > 1 else 0
    detail_visible = usable_width > LAYOUT.DETAIL_PANE_MIN_WIDTH
    if detail_visible:
        list_width = max(sizing.min_list_width, int(usable_width * sizing.list_ratio))
        detail_width = usable_width - list_width
    else:
        list_width = usable_width
        detail_width = 0
    return PaneLayout(
        width=width,
        height=height,
        list_width=list_width,
        detail_width=detail_width,
        detail_visible=detail_visible,
        tab_row_height=tab_row,
        body_height=max(1, usable_height - tab_row),
    )


class ModelSelector:
    def __init__(
        self,
        tabs: Sequence[Tab],
        lists: Mapping[Tab, ModelList],
        approved_actions: Sequence[ManageAction] = (),
    ) -> None:
        if not tabs:
            raise ValueError("at least one tab is required")
        self.tabs: List[Tab] = list(tabs)
        self.lists: Dict[Tab, ModelList] = {
            tab: lists.get(tab) or ModelList(LIST_TITLES[tab]) for tab in self.tabs
        }
        self.approved_actions: Tuple[ManageAction, ...] = tuple(approved_actions)
        self.active_tab = 0
        self.help_visible = False
        self.outcome = Outcome.RUNNING
        self.action: Optional[Tab] = None
        self.manage_action: Optional[ManageAction] = None
        self.selected: Dict[Tab, Listable] = {}
        self.layout: Optional[PaneLayout] = None

    @property
    def current_tab(self) -> Tab:
        return self.tabs[self.active_tab]

    @property
    def active_list(self) -> ModelList:
        return self.lists[self.current_tab]

    def resize(self, width: int, height: int) -> PaneLayout:
        self.layout = compute_layout(width, height, len(self.tabs))
        for model_list in self.lists.values():
            model_list.set_size(self.layout.list_width, self.layout.body_height)
        return self.layout

    def help_entries(self) -> List[Tuple[str, str]]:
        return help_entries(
            len(self.tabs),
            manage_active=self.current_tab is Tab.MANAGE,
            approved=self.approved_actions,
        )

    def cancel(self) -> Outcome:
        self.outcome = Outcome.CANCELLED
        logger.info("selector cancelled on tab %s", self.current_tab.value)
        return self.outcome

    def _commit(self, manage_action: Optional[ManageAction] = None) -> Outcome:
        tab = self.current_tab
        item = self.active_list.selected_item()
        if item is not None:
            self.selected[tab] = item
        self.action = tab
        if manage_action is not None:
            self.manage_action = manage_action
        self.outcome = Outcome.COMMITTED
        logger.info(
            "selector committed tab=%s item=%s manage_action=%s",
            tab.value,
            item.name if item is not None else None,
            manage_action.value if manage_action is not None else None,
        )
        return self.outcome

    def _switch_tab(self, delta: int) -> None:
        self.active_tab = max(0, min(len(self.tabs) - 1, self.active_tab + delta))

    def handle_key(self, key: int) -> Outcome:
        if self.outcome is not Outcome.RUNNING:
            return self.outcome

        if self.help_visible:
            if key in KEYS.QUIT:
                return self.cancel()
            if key in KEYS.TOGGLE_HELP or key == ESC:
                self.help_visible = False
            return self.outcome

        active = self.active_list
        if active.filtering:
            active.handle_key(key)
            return self.outcome

        if key in KEYS.QUIT:
            return self.cancel()
        if key == ESC:
            if active.filter_state is FilterState.APPLIED:
                active.clear_filter()
                return self.outcome
            return self.cancel()
        if key in KEYS.TOGGLE_HELP:
            self.help_visible = True
            return self.outcome
        if key in KEYS.NEXT_TAB:
            self._switch_tab(1)
            return self.outcome
        if key in KEYS.PREV_TAB:
            self._switch_tab(-1)
            return self.outcome
        if key in KEYS.CONFIRM:
            return self._commit()

        shortcut = shortcut_action(key, ManageAction)
        if shortcut is not None:
            if self.current_tab is Tab.MANAGE and shortcut in self.approved_actions:
                return self._commit(shortcut)
            return self.outcome

        active.handle_key(key)
        return self.outcome

    def selection(self) -> SelectionContext:
        context = SelectionContext(approved_actions=self.approved_actions)
        if self.outcome is not Outcome.COMMITTED:
            return context
        context.action = self.action
        context.manage_action = self.manage_action
        item = self.selected.get(self.action) if self.action is not None else None
        if self.action is Tab.INSTALL:
            context.installable = item  # type: ignore[assignment]
        elif self.action is Tab.MANAGE:
            context.installed = item  # type: ignore[assignment]
        elif self.action is Tab.MONITOR:
            context.running = item  # type: ignore[assignment]
        return context


def _badges(values: Iterable[str]) -> str:
    return "  ".join(f" {value} " for value in values if value)


def detail_lines(item: Optional[Listable], width: int, filter_text: str = "") -> List[Tuple[str, str]]:
    """Lines for the detail pane as ``(text, style name)`` pairs."""
    if item is None:
        if filter_text:
            return [(f'"{filter_text}" not found', "dim")]
        return [("Nothing to show", "dim")]

    lines: List[Tuple[str, str]] = [(f" {item.name} ", "title"), ("", "normal")]
    kind = item.kind
    if kind is ItemKind.INSTALLABLE:
        lines.append((item.updated, "dim"))
        if item.labels:
            lines.append(("", "normal"))
            lines.append((_badges(item.labels), "badge"))
        lines.append(("", "normal"))
        lines.extend((line, "normal") for line in wrap_lines(item.desc, width))
        lines.append(("", "normal"))
        lines.append((f"{item.pulls} Pulls • {item.tag_count} Tags", "dim"))
    elif kind is ItemKind.INSTALLED:
        badges = [item.details.format, item.details.quantization_level]
        if item.is_multimodal:
            badges.append("vision")
        lines.append((_badges(badges), "badge"))
        lines.append(("", "normal"))
        lines.extend((line, "normal") for line in wrap_lines(item.digest, width))
        lines.append(("", "normal"))
        lines.append((item.description(), "dim"))
    elif kind is ItemKind.RUNNING:
        lines.append((_badges([item.details.format, item.details.quantization_level]), "badge"))
        lines.append(("", "normal"))
        lines.append((f" Expires {natural_time(item.expires_at)} ", "title"))
        lines.append(("", "normal"))
        lines.extend((line, "normal") for line in wrap_lines(split_summary(item.memory), width))
    else:
        raise AssertionError(f"unhandled item kind: {kind}")
    return lines


def _list_status(model_list: ModelList) -> Tuple[str, str]:
    total = len(model_list.items)
    if model_list.filter_state is FilterState.FILTERING:
        return (f"Filter: {model_list.filter_text}▏", "key")
    if model_list.filter_state is FilterState.APPLIED:
        shown = len(model_list.visible_items())
        return (f'"{model_list.filter_text}" • {shown}/{total} items', "dim")
    return (f"{total} item{'s' if total != 1 else ''}", "dim")


def draw_tab_row(stdscr: "curses._CursesWindow", selector: ModelSelector, theme: Theme, top: int, left: int, width: int) -> None:
    count = len(selector.tabs)
    tab_width = width // count
    x = left
    for idx, tab in enumerate(selector.tabs):
        w = tab_width
        if idx == 0:
            w = width - (count - 1) * tab_width
        label = truncate(tab.value, max(1, w - 2))
        active = idx == selector.active_tab
        cell = label.center(w)
        safe_addnstr(stdscr, top, x, cell, w, theme.title if active else theme.dim)
        underline = " " * w if active else "─" * w
        safe_addnstr(stdscr, top + 1, x, underline, w, theme.border)
        x += w


def draw_list(
    stdscr: "curses._CursesWindow",
    model_list: ModelList,
    theme: Theme,
    top: int,
    left: int,
    width: int,
    height: int,
) -> None:
    draw_box(stdscr, top, left, height, width, theme.border)
    inner_left = left + 2
    inner_width = max(1, width - 5)
    safe_addnstr(stdscr, top + 1, inner_left, truncate(f" {model_list.title} ", inner_width), inner_width, theme.title)
    status, style = _list_status(model_list)
    visible = model_list.visible_items()
    indicator = format_scroll_indicator(model_list.offset, len(visible), model_list.per_page())
    if indicator and inner_width > len(status) + len(indicator) + 2:
        status = f"{status}  {indicator}"
    safe_addnstr(stdscr, top + 2, inner_left, truncate(status, inner_width), inner_width, theme.attr(style))

    row = top + 1 + LIST_HEADER_ROWS
    page = visible[model_list.offset : model_list.offset + model_list.per_page()]
    for idx, item in enumerate(page, start=model_list.offset):
        selected = idx == model_list.cursor
        marker = "│ " if selected else "  "
        title_attr = theme.highlight if selected else theme.normal
        safe_addnstr(stdscr, row, inner_left, marker, 2, theme.border)
        safe_addnstr(stdscr, row, inner_left + 2, truncate(item.title(), inner_width - 2), inner_width - 2, title_attr)
        safe_addnstr(stdscr, row + 1, inner_left, marker, 2, theme.border)
        safe_addnstr(stdscr, row + 1, inner_left + 2, truncate(item.description(), inner_width - 2), inner_width - 2, theme.dim)
        row += UI.ITEM_HEIGHT

    draw_scrollbar(
        stdscr,
        top=top + 1 + LIST_HEADER_ROWS,
        height=max(0, height - 2 - LIST_HEADER_ROWS),
        x=left + width - 2,
        first_index=model_list.offset,
        total=len(visible),
        visible_rows=model_list.per_page(),
        attr=theme.dim,
    )


def draw_help_overlay(stdscr: "curses._CursesWindow", selector: ModelSelector, theme: Theme, width: int, height: int) -> None:
    box_width = max(20, 8 * width // 10)
    box_height = max(6, 90 * height // 100)
    left = max(0, width // 10)
    top = max(0, 5 * height // 100)
    fill_rect(stdscr, top, left, box_height, box_width)
    draw_box(stdscr, top, left, box_height, box_width, theme.border)
    inner = box_width - 4
    title = " Help Menu "
    safe_addnstr(stdscr, top + 1, left + max(2, (box_width - len(title)) // 2), title, inner, theme.title)

    entries = selector.help_entries()
    columns = UI.HELP_COLUMNS
    per_column = (len(entries) + columns - 1) // columns
    column_width = max(10, inner // columns)
    key_width = max(len(k) for k, _ in entries) + 2
    for idx, (keys, desc) in enumerate(entries):
        col, row = divmod(idx, per_column)
        y = top + 3 + row
        x = left + 2 + col * column_width
        if y >= top + box_height - 3:
            continue
        safe_addnstr(stdscr, y, x, keys, column_width, theme.key)
        safe_addnstr(stdscr, y, x + key_width, truncate(desc, column_width - key_width - 1), column_width - key_width, theme.normal)

    footer = "Press ? to close this menu"
    safe_addnstr(
        stdscr,
        top + box_height - 2,
        left + max(2, (box_width - len(footer)) // 2),
        footer,
        inner,
        theme.dim,
    )


def draw_selector(stdscr: "curses._CursesWindow", selector: ModelSelector, theme: Theme) -> None:
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    if height < LAYOUT.MIN_HEIGHT or width < LAYOUT.MIN_WIDTH:
        warning = "Terminal window too small. Please resize."
        safe_addnstr(stdscr, 0, 0, truncate(warning, width - 1), width - 1, curses.A_BOLD)
        stdscr.refresh()
        return

    layout = selector.layout or selector.resize(width, height)
    margin = SELECTOR_LAYOUT.margin
    top = margin
    if layout.tab_row_height:
        draw_tab_row(stdscr, selector, theme, top, margin, layout.list_width + layout.detail_width)
        top += layout.tab_row_height

    active = selector.active_list
    draw_list(stdscr, active, theme, top, margin, layout.list_width, layout.body_height)

    if layout.detail_visible:
        left = margin + layout.list_width
        draw_box(stdscr, top, left, layout.body_height, layout.detail_width, theme.border)
        inner = max(1, layout.detail_width - 6)
        lines = detail_lines(active.selected_item(), inner, active.filter_text)
        draw_styled_lines(
            stdscr,
            lines,
            theme,
            top=top + 2,
            left=left + 3,
            width=inner,
            height=layout.body_height - 3,
            center=True,
        )

    if selector.help_visible:
        draw_help_overlay(stdscr, selector, theme, width, height)

    hint = "?: help • enter: pick • /: filter • q: quit"
    if len(selector.tabs) > 1:
        hint = "?: help • tab: next tab • enter: pick • /: filter • q: quit"
    safe_addnstr(stdscr, height - 1, margin + 1, truncate(hint, width - 3), width - 3, theme.dim)
    stdscr.refresh()


def run_selector(
    stdscr: "curses._CursesWindow",
    selector: ModelSelector,
    theme: Optional[Theme] = None,
) -> SelectionContext:
    theme = theme or Theme.from_curses()
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)
    while selector.outcome is Outcome.RUNNING:
        height, width = stdscr.getmaxyx()
        layout = selector.layout
        if layout is None or (layout.width, layout.height) != (width, height):
            selector.resize(width, height)
        draw_selector(stdscr, selector, theme)
        try:
            key = stdscr.getch()
        except KeyboardInterrupt:
            selector.cancel()
            break
        if key == curses.KEY_RESIZE:
            continue
        selector.handle_key(key)
    return selector.selection()
