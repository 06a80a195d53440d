#!/usr/bin/env python3
"""Install, update, delete and load Ollama models from the terminal."""
from __future__ import annotations

import argparse
import locale
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TextIO, Tuple

from dotenv import load_dotenv

from actions import resolve_install_target, resolve_monitor_choice
from catalog import Catalog
from constants import DAEMON
from errors import ErrorSeverity, OllamanagerError
from model_types import ManageAction, MonitorChoice, SelectionContext, Tab
from ollama_client import OllamaClient
from operations import OperationResult, run_operation
from picker import model_picker
from progress_view import run_with_spinner
from tui_base import handle_error
from tui_utils import prompt_select
from validators import validate_base_url

SCRIPT_DIR = Path(__file__).resolve().parent
DEFAULT_LOG_FILE = Path.home() / ".ollamanager.log"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DEFAULT_PORT = 11434

logger = logging.getLogger("ollamanager")


def load_environment() -> None:
    for base in (SCRIPT_DIR, Path.cwd()):
        load_dotenv(base / ".env")
        load_dotenv(base / ".env.local")


def configure_logging() -> None:
    log_file = Path(os.getenv("OLLAMANAGER_LOG_FILE") or DEFAULT_LOG_FILE).expanduser()
    level = logging.getLevelName((os.getenv("OLLAMANAGER_LOG_LEVEL") or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT)


@dataclass(frozen=True)
class SessionConfig:
    base_url: str
    tabs: Tuple[Tab, ...] = tuple(Tab)
    approved_actions: Tuple[ManageAction, ...] = tuple(ManageAction)


class Reporter:
    """Prints the outcome of each session below the full-screen views."""

    def __init__(self, stream: Optional[TextIO] = None, *, color: Optional[bool] = None) -> None:
        self.stream = stream or sys.stdout
        self.color = self.stream.isatty() if color is None else color

    def _style(self, text: str, code: str) -> str:
        if not self.color:
            return text
        return f"\x1b[{code}m {text} \x1b[0m"

    def highlight(self, text: str) -> str:
        return self._style(text, "1;37;45")

    def line(self, text: str = "") -> None:
        print(f"  {text}" if text else "", file=self.stream, flush=True)

    def picked(self, context: SelectionContext, target: str) -> None:
        label = context.action.value if context.action else "?"
        if context.action is Tab.MANAGE and context.manage_action is not None:
            label = context.manage_action.value
        self.line()
        self.line(f"Picked action {self.highlight(label)} on model {self.highlight(target)}")
        self.line()

    def performed(self, result: OperationResult) -> None:
        name = self.highlight(result.model_name)
        if result.action is Tab.MONITOR:
            if result.monitor_choice is MonitorChoice.KEEP_LOADED:
                self.line(f"Model {name} will stay loaded in memory {self.highlight('indefinitely')}")
            elif result.monitor_choice is MonitorChoice.UNLOAD:
                self.line(f"Model {name} {self.highlight('unloaded')} from memory")
            else:
                self.line(f"No changes made to {name}")
            return
        label = result.action.value
        if result.action is Tab.MANAGE and result.manage_action is not None:
            label = result.manage_action.value
        self.line(f"Performed action {self.highlight(label)} on model {name} successfully!")

    def error(self, exc: OllamanagerError) -> None:
        text = handle_error(exc)
        code = "1;30;43" if exc.severity == ErrorSeverity.WARNING else "1;37;41"
        self.line(self._style(text, code))
        if exc.severity == ErrorSeverity.WARNING:
            self.line("Nothing was done.")


def run_session(
    config: SessionConfig,
    client: OllamaClient,
    catalog: Catalog,
    reporter: Reporter,
    *,
    picker: Callable[..., SelectionContext] = model_picker,
    form: Callable = prompt_select,
    spin: Callable = run_with_spinner,
    runner: Callable[..., OperationResult] = run_operation,
) -> OperationResult:
    context = picker(client, catalog, config.tabs, config.approved_actions)
    target = context.model_name
    if context.action is Tab.INSTALL:

        def fetch_tags(name: str):
            return spin(f"Loading tags for {name}...", lambda: catalog.tags(name))

        target = resolve_install_target(target, fetch_tags, form)

    reporter.picked(context, target)
    result = runner(
        context,
        target,
        client,
        choose_monitor=lambda name: resolve_monitor_choice(name, form),
    )
    reporter.performed(result)
    return result


def ask_again(input_fn: Callable[[str], str] = input) -> bool:
    answer = input_fn("Would you like to try again? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Browse, install and manage models of a local Ollama daemon.",
        epilog="OLLAMA_HOST is used when --base-url is not given.",
    )
    parser.add_argument(
        "-u",
        "--base-url",
        default=None,
        help=f"Daemon address (default: $OLLAMA_HOST or {DAEMON.BASE_URL})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    load_environment()
    configure_logging()
    locale.setlocale(locale.LC_ALL, "")
    os.environ.setdefault("ESCDELAY", "25")

    parser = build_parser()
    args = parser.parse_args(argv)
    checked = validate_base_url(
        args.base_url or os.getenv("OLLAMA_HOST"),
        default=DAEMON.BASE_URL,
        default_port=DEFAULT_PORT,
    )
    if not checked.is_valid:
        parser.error(checked.error)

    config = SessionConfig(base_url=checked.value)
    client = OllamaClient(config.base_url)
    catalog = Catalog()
    reporter = Reporter()

    try:
        version = client.version()
    except OllamanagerError as exc:
        reporter.error(exc)
        return 1
    logger.info("connected to %s (daemon version %s)", config.base_url, version)

    while True:
        try:
            run_session(config, client, catalog, reporter)
        except OllamanagerError as exc:
            reporter.error(exc)
            if not exc.recoverable:
                return 1
        try:
            if not ask_again():
                return 0
        except (EOFError, KeyboardInterrupt):
            reporter.line()
            return 0


if __name__ == "__main__":
    sys.exit(main())
