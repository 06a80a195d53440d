"""Decisions taken between picking a model and running the operation.

Every step takes its prompt as a callable with the signature of
:func:`tui_utils.prompt_select`, so the flows run without a terminal in tests.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from errors import EmptyResultError, FetchError, NoActionsAvailable, UserDeclined
from model_types import ManageAction, MonitorChoice, SelectionContext, Tab
from tui_utils import FormOption, labelled, prompt_select

logger = logging.getLogger(__name__)

FormFn = Callable[..., Tuple[object, bool]]

CONFIRM_TITLE = "Would you like to continue?"


def resolve_manage_action(context: SelectionContext, choose: FormFn = prompt_select) -> SelectionContext:
    """Make sure a manage selection carries an approved action."""
    if context.action is not Tab.MANAGE:
        return context
    approved = tuple(context.approved_actions)
    if not approved:
        raise NoActionsAvailable("no actions available for installed models")
    if context.manage_action in approved:
        return context
    if len(approved) == 1:
        context.manage_action = approved[0]
        return context

    picked, _ = choose(f"Choose the action for {context.model_name}", labelled(list(approved)))
    if picked not in approved:
        raise NoActionsAvailable(f"action {picked!r} is not available")
    context.manage_action = picked  # type: ignore[assignment]
    logger.info("manage action %s chosen for %s", context.manage_action.value, context.model_name)
    return context


def resolve_install_target(
    model_name: str,
    fetch_tags: Callable[[str], Sequence[str]],
    form: FormFn = prompt_select,
) -> str:
    """Ask for a tag of ``model_name`` and return ``name:tag``."""
    try:
        tags: List[str] = list(fetch_tags(model_name))
    except FetchError as exc:
        raise FetchError(f"couldn't load tags for {model_name} :( ({exc.message})") from exc
    if not tags:
        raise EmptyResultError(f"couldn't load tags for {model_name} :(")

    tag, confirmed = form(
        f"Choose your tag for {model_name}",
        [FormOption(tag, tag) for tag in tags],
        confirm_title=CONFIRM_TITLE,
    )
    if not confirmed:
        logger.info("install of %s declined", model_name)
        raise UserDeclined("see you")
    return f"{model_name}:{tag}"


def resolve_monitor_choice(model_name: str, form: FormFn = prompt_select) -> MonitorChoice:
    """Tri-state memory choice for a running model; declining means no change."""
    choices = list(MonitorChoice)
    choice, confirmed = form(
        f"What should happen to {model_name}?",
        labelled(choices, [c.label for c in choices]),
        confirm_title=CONFIRM_TITLE,
    )
    if not confirmed:
        return MonitorChoice.NOTHING
    return choice  # type: ignore[return-value]


def approved_or_default(actions: Optional[Sequence[ManageAction]]) -> Tuple[ManageAction, ...]:
    if actions is None:
        return tuple(ManageAction)
    return tuple(dict.fromkeys(actions))
