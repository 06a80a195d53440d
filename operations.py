"""Runs the picked operation against the daemon."""
from __future__ import annotations

import curses
import logging
import os
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from constants import UI
from errors import DaemonError, EmptyResultError, NoActionsAvailable, OllamanagerError
from model_types import ManageAction, MonitorChoice, SelectionContext, Tab
from ollama_client import KEEP_LOADED, UNLOAD_NOW, OllamaClient
from process_utils import run_foreground
from progress_view import STREAM_CLOSED, ProgressRenderer, StreamFailed, run_progress

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    action: Tab
    model_name: str
    manage_action: Optional[ManageAction] = None
    monitor_choice: Optional[MonitorChoice] = None
    completed_steps: List[str] = field(default_factory=list)


class PullWorker(threading.Thread):
    """Sole producer on the progress channel for one pull.

    Ends with ``STREAM_CLOSED`` after a successful stream, or with a single
    :class:`StreamFailed` if the pull raised. Nothing is retried.
    """

    def __init__(self, client: OllamaClient, model_name: str, channel: "queue.Queue") -> None:
        super().__init__(name=f"pull-{model_name}", daemon=True)
        self.client = client
        self.model_name = model_name
        self.channel = channel
        self.stop_event = threading.Event()

    def stop(self) -> None:
        self.stop_event.set()

    def _put(self, message: object) -> bool:
        while not self.stop_event.is_set():
            try:
                self.channel.put(message, timeout=UI.EVENT_POLL_TIMEOUT)
                return True
            except queue.Full:
                continue
        return False

    def run(self) -> None:
        events = self.client.pull(self.model_name)
        try:
            for event in events:
                if not self._put(event):
                    logger.info("pull of %s abandoned by the receiver", self.model_name)
                    return
        except OllamanagerError as exc:
            logger.warning("pull of %s failed: %s", self.model_name, exc.message)
            self._put(StreamFailed(exc))
            return
        except Exception as exc:
            logger.exception("pull of %s crashed", self.model_name)
            self._put(StreamFailed(DaemonError(f"failed to pull {self.model_name}: {exc}")))
            return
        finally:
            events.close()
        self._put(STREAM_CLOSED)


def pull_with_progress(client: OllamaClient, model_name: str, *, echo: Callable[[str], None] = print) -> List[str]:
    """Pull ``model_name`` behind the progress screen and return the completed steps."""
    channel: "queue.Queue" = queue.Queue(maxsize=UI.EVENT_QUEUE_SIZE)
    renderer = ProgressRenderer(model_name)
    worker = PullWorker(client, model_name, channel)
    worker.start()
    try:
        curses.wrapper(lambda stdscr: run_progress(stdscr, channel, renderer))
    finally:
        # The worker is not joined; a pull already running daemon-side may continue.
        worker.stop()
        for line in renderer.completed_lines:
            echo(f"✓ {line}")
    return list(renderer.completed_lines)


def apply_monitor_choice(client: OllamaClient, model_name: str, choice: MonitorChoice) -> None:
    if choice is MonitorChoice.KEEP_LOADED:
        client.keep_alive(model_name, KEEP_LOADED)
    elif choice is MonitorChoice.UNLOAD:
        client.keep_alive(model_name, UNLOAD_NOW)
    else:
        logger.info("leaving %s as it is", model_name)


def launch_chat(
    base_url: str,
    model_name: str,
    *,
    runner: Callable[..., int] = run_foreground,
) -> None:
    env = dict(os.environ)
    env["OLLAMA_HOST"] = base_url
    try:
        code = runner(["ollama", "run", model_name], env=env)
    except FileNotFoundError as exc:
        raise DaemonError("the ollama binary was not found on PATH") from exc
    if code != 0:
        raise DaemonError(f"chat with {model_name} exited with status {code}")


def run_operation(
    context: SelectionContext,
    target: str,
    client: OllamaClient,
    *,
    choose_monitor: Callable[[str], MonitorChoice],
    pull: Callable[[OllamaClient, str], List[str]] = pull_with_progress,
    chat: Callable[[str, str], None] = launch_chat,
) -> OperationResult:
    action = context.action
    if action is None or not target:
        raise EmptyResultError("failed to pick a model :(")
    result = OperationResult(action=action, model_name=target, manage_action=context.manage_action)
    logger.info("running %s on %s (manage action %s)", action.value, target, context.manage_action)

    if action is Tab.INSTALL:
        result.completed_steps = pull(client, target)
    elif action is Tab.MANAGE:
        manage = context.manage_action
        if manage is ManageAction.UPDATE:
            result.completed_steps = pull(client, target)
        elif manage is ManageAction.DELETE:
            client.delete(target)
        elif manage is ManageAction.CHAT:
            chat(client.base_url, target)
        else:
            raise NoActionsAvailable(f"no action chosen for {target}")
    elif action is Tab.MONITOR:
        result.monitor_choice = choose_monitor(target)
        apply_monitor_choice(client, target, result.monitor_choice)
    else:
        raise AssertionError(f"unhandled tab: {action}")
    logger.info("%s on %s finished", action.value, target)
    return result
