"""Spinners and the pull progress screen."""
from __future__ import annotations

import curses
import logging
import queue
import random
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TextIO, TypeVar

from constants import SPINNER_STYLES, UI
from errors import DaemonError, OllamanagerError, UserCancelled
from keybindings import ESC, KEYS
from model_types import ProgressEvent
from tui_base import Theme, draw_log_lines, safe_addnstr, truncate

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_LABELS = {
    "pulling manifest": "Pulling manifest...",
    "verifying sha256 digest": "Verifying sha256 digest...",
    "writing manifest": "Writing manifest...",
    "removing any unused layers": "Removing any unused layers...",
    "success": "Success!",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, f"Downloading... ({status}) ")


@dataclass(frozen=True)
class StreamFailed:
    """The pull worker stopped on ``error``."""

    error: OllamanagerError


class StreamClosed:
    def __repr__(self) -> str:
        return "STREAM_CLOSED"


STREAM_CLOSED = StreamClosed()


class Spinner:
    def __init__(
        self,
        frames: Optional[Sequence[str]] = None,
        *,
        interval: float = UI.SPINNER_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.frames = tuple(frames or random.choice(SPINNER_STYLES))
        self.interval = interval
        self._clock = clock
        self.started = clock()

    def frame(self, now: Optional[float] = None) -> str:
        now = self._clock() if now is None else now
        idx = int(max(0.0, now - self.started) / self.interval) % len(self.frames)
        return self.frames[idx]


def run_with_spinner(title: str, fn: Callable[[], T], *, stream: TextIO = sys.stderr) -> T:
    """Run ``fn`` on a worker thread while animating ``title`` on ``stream``."""
    outcome: dict = {}
    done = threading.Event()

    def target() -> None:
        try:
            outcome["value"] = fn()
        except Exception as exc:
            outcome["error"] = exc
        finally:
            done.set()

    worker = threading.Thread(target=target, name="spinner-task", daemon=True)
    worker.start()
    spinner = Spinner()
    try:
        while not done.wait(spinner.interval):
            stream.write(f"\r{spinner.frame()} {title}")
            stream.flush()
    except KeyboardInterrupt as exc:
        logger.info("cancelled while %s", title)
        raise UserCancelled(f"cancelled: {title}") from exc
    finally:
        stream.write("\r" + " " * (len(title) + 8) + "\r")
        stream.flush()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


class ProgressRenderer:
    """Reduces the pull event stream to what the progress screen shows.

    Each change of status token appends ``completed: <previous>`` to
    :attr:`completed_lines` and reseeds the spinner. The bar only moves for
    events that carry a total. A ``success`` event starts the final pause,
    after which :meth:`is_finished` turns true.
    """

    def __init__(
        self,
        model_name: str,
        *,
        pause: float = UI.FINAL_PAUSE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.model_name = model_name
        self.status = ""
        self.label = "Starting..."
        self.fraction: Optional[float] = None
        self.completed_lines: List[str] = []
        self.transitions = 0
        self.pause = pause
        self.pause_until: Optional[float] = None
        self._clock = clock
        self.spinner = Spinner(clock=clock)

    @property
    def succeeded(self) -> bool:
        return self.pause_until is not None

    def feed(self, event: ProgressEvent) -> List[str]:
        emitted: List[str] = []
        if event.status != self.status:
            if self.status:
                line = f"completed: {self.status}"
                emitted.append(line)
                self.completed_lines.append(line)
                del self.completed_lines[: -UI.LOG_HISTORY]
                self.transitions += 1
                logger.debug("pull of %s: %s -> %s", self.model_name, self.status, event.status)
            self.status = event.status
            self.label = status_label(event.status)
            self.spinner = Spinner(clock=self._clock)
        if event.fraction is not None:
            self.fraction = event.fraction
        if event.is_success and self.pause_until is None:
            self.pause_until = self._clock() + self.pause
        return emitted

    def is_finished(self, now: Optional[float] = None) -> bool:
        if self.pause_until is None:
            return False
        now = self._clock() if now is None else now
        return now >= self.pause_until


def progress_bar(fraction: Optional[float], width: int) -> str:
    percent = f" {int(round((fraction or 0.0) * 100)):3d}%"
    cells = max(1, width - len(percent))
    filled = int(round((fraction or 0.0) * cells))
    return "█" * filled + "░" * (cells - filled) + percent


def draw_progress(stdscr: "curses._CursesWindow", renderer: ProgressRenderer, theme: Theme) -> None:
    stdscr.erase()
    height, width = stdscr.getmaxyx()
    pad = UI.PADDING
    inner = max(1, min(width - pad * 2, UI.PROGRESS_MAX_WIDTH))
    row = 1
    safe_addnstr(stdscr, row, pad, truncate(f" Pulling {renderer.model_name} ", inner), inner, theme.title)
    row += 2

    # Keep room for status, bar and hint below the log.
    log_rows = max(0, height - row - 6)
    row += draw_log_lines(stdscr, renderer.completed_lines, theme, top=row, left=pad, width=inner, height=log_rows)
    if renderer.completed_lines:
        row += 1

    status = f"{renderer.spinner.frame()} {renderer.label}"
    safe_addnstr(stdscr, row, pad, truncate(status, inner), inner, theme.status if renderer.succeeded else theme.normal)
    row += 1
    if renderer.fraction is not None:
        safe_addnstr(stdscr, row, pad, progress_bar(renderer.fraction, inner), inner, theme.success)
        row += 1
    safe_addnstr(stdscr, min(height - 1, row + 1), pad, truncate("q: quit", inner), inner, theme.dim)
    stdscr.refresh()


def _drain(channel: "queue.Queue", renderer: ProgressRenderer) -> None:
    while True:
        try:
            message = channel.get_nowait()
        except queue.Empty:
            return
        if isinstance(message, ProgressEvent):
            renderer.feed(message)
        elif isinstance(message, StreamFailed):
            raise message.error
        elif message is STREAM_CLOSED:
            if not renderer.succeeded:
                raise DaemonError("pull stream ended before completion")
            return


def run_progress(
    stdscr: "curses._CursesWindow",
    channel: "queue.Queue",
    renderer: ProgressRenderer,
    theme: Optional[Theme] = None,
) -> ProgressRenderer:
    theme = theme or Theme.from_curses()
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)
    stdscr.timeout(int(UI.SPINNER_INTERVAL * 1000))
    while True:
        _drain(channel, renderer)
        if renderer.is_finished():
            return renderer
        draw_progress(stdscr, renderer, theme)
        try:
            key = stdscr.getch()
        except KeyboardInterrupt:
            key = KEYS.QUIT[0]
        if key in KEYS.QUIT or key == ESC:
            if renderer.succeeded:
                return renderer
            logger.info("user quit while pulling %s", renderer.model_name)
            raise UserCancelled("user quit mid download :(")
