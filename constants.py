from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class LayoutBreakpoints:
    DETAIL_PANE_MIN_WIDTH: int = 90
    MIN_WIDTH: int = 20
    MIN_HEIGHT: int = 8


@dataclass(frozen=True)
class UIDefaults:
    LOG_HISTORY: int = 200
    SPINNER_INTERVAL: float = 0.1
    FINAL_PAUSE: float = 0.75
    EVENT_QUEUE_SIZE: int = 64
    EVENT_POLL_TIMEOUT: float = 0.05
    PROGRESS_MAX_WIDTH: int = 80
    PADDING: int = 2
    ITEM_HEIGHT: int = 3
    HELP_COLUMNS: int = 2


@dataclass(frozen=True)
class LayoutSizing:
    list_ratio: float
    margin: int = 1
    min_list_width: int = 24


@dataclass(frozen=True)
class DaemonDefaults:
    BASE_URL: str = "http://localhost:11434"
    CONNECT_TIMEOUT: float = 10.0
    READ_TIMEOUT: float = 30.0


@dataclass(frozen=True)
class CatalogDefaults:
    LIBRARY_URL: str = "https://ollama.com/library"
    TIMEOUT: float = 30.0
    USER_AGENT: str = "ollamanager/0.3 (+https://github.com/gaurav-gosain/ollamanager)"


# Frame sequences a spinner can be seeded with.
SPINNER_STYLES: Tuple[Tuple[str, ...], ...] = (
    ("|", "/", "-", "\\"),
    ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷"),
    ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"),
    ("⢄", "⢂", "⢁", "⡁", "⡈", "⡐", "⡠"),
    ("█", "▓", "▒", "░"),
    ("∙∙∙", "●∙∙", "∙●∙", "∙∙●"),
    ("▱▱▱", "▰▱▱", "▰▰▱", "▰▰▰", "▰▰▱", "▰▱▱", "▱▱▱"),
    ("☱", "☲", "☴", "☲"),
)


LAYOUT = LayoutBreakpoints()
UI = UIDefaults()
DAEMON = DaemonDefaults()
CATALOG = CatalogDefaults()

SELECTOR_LAYOUT = LayoutSizing(list_ratio=0.6)
