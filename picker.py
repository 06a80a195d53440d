"""Loads the catalogs, runs the selector and validates what came back."""
from __future__ import annotations

import curses
import logging
from typing import Callable, Dict, List, Optional, Sequence

from actions import approved_or_default, resolve_manage_action
from catalog import Catalog
from errors import EmptyResultError, UserCancelled
from model_types import Listable, ManageAction, SelectionContext, Tab
from ollama_client import OllamaClient
from progress_view import run_with_spinner
from selector import LIST_TITLES, ModelList, ModelSelector, Outcome, run_selector
from tui_utils import prompt_select

logger = logging.getLogger(__name__)

LOADING_TITLES = {
    Tab.INSTALL: "Loading installable models...",
    Tab.MANAGE: "Loading installed models...",
    Tab.MONITOR: "Loading running models...",
}


def fetch_lists(
    client: OllamaClient,
    catalog: Catalog,
    tabs: Sequence[Tab],
    *,
    spin: Callable = run_with_spinner,
) -> Dict[Tab, ModelList]:
    """Fetch each configured tab in turn; the first failure aborts."""
    loaders: Dict[Tab, Callable[[], List[Listable]]] = {
        Tab.INSTALL: catalog.installable_models,
        Tab.MANAGE: client.list_installed,
        Tab.MONITOR: client.list_running,
    }
    lists: Dict[Tab, ModelList] = {}
    for tab in tabs:
        items = spin(LOADING_TITLES[tab], loaders[tab])
        lists[tab] = ModelList(LIST_TITLES[tab], items)
    return lists


def model_picker(
    client: OllamaClient,
    catalog: Catalog,
    tabs: Sequence[Tab] = tuple(Tab),
    approved_actions: Optional[Sequence[ManageAction]] = None,
    *,
    spin: Callable = run_with_spinner,
    screen: Callable = curses.wrapper,
    choose: Callable = prompt_select,
) -> SelectionContext:
    tabs = list(dict.fromkeys(tabs))
    approved = approved_or_default(approved_actions)
    lists = fetch_lists(client, catalog, tabs, spin=spin)
    selector = ModelSelector(tabs, lists, approved)
    context: SelectionContext = screen(lambda stdscr: run_selector(stdscr, selector))

    if selector.outcome is Outcome.CANCELLED:
        raise UserCancelled("no model picked")
    if context.is_empty:
        raise EmptyResultError("failed to pick a model :(")
    return resolve_manage_action(context, choose)
