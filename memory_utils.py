"""Helpers for describing model sizes, timestamps and memory placement in the TUI."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass
class MemorySplit:
    total: int
    accelerator: int
    cpu: int
    accelerator_percent: float
    cpu_percent: float


def format_bytes(num_bytes: Optional[int]) -> str:
    if num_bytes is None:
        return "?"
    if num_bytes < 0:
        num_bytes = 0
    units = ["B", "kB", "MB", "GB", "TB"]
    value = float(num_bytes)
    for unit in units:
        if value < 1000.0 or unit == units[-1]:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} {unit}"
        value /= 1000.0
    return f"{value:.1f} PB"


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parse the RFC 3339 timestamps the daemon emits.

    The daemon writes nanosecond fractions and a ``Z`` suffix, neither of which
    :func:`datetime.fromisoformat` accepts on every interpreter.
    """
    if not raw:
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def natural_time(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    delta = (moment - now).total_seconds()
    future = delta > 0
    seconds = int(abs(delta))
    if seconds < 1:
        return "now"
    if future and seconds > 86400 * 365 * 100:
        return "never"
    if seconds < 60:
        span = _plural(seconds, "second")
    elif seconds < 3600:
        span = _plural(seconds // 60, "minute")
    elif seconds < 86400:
        span = _plural(seconds // 3600, "hour")
    elif seconds < 86400 * 30:
        span = _plural(seconds // 86400, "day")
    elif seconds < 86400 * 365:
        span = _plural(seconds // (86400 * 30), "month")
    else:
        span = _plural(seconds // (86400 * 365), "year")
    return f"{span} from now" if future else f"{span} ago"


def memory_split(total: int, accelerator: int) -> MemorySplit:
    total = max(0, int(total or 0))
    accelerator = max(0, min(int(accelerator or 0), total))
    cpu = total - accelerator
    if total == 0:
        return MemorySplit(total, 0, 0, 0.0, 0.0)
    return MemorySplit(
        total=total,
        accelerator=accelerator,
        cpu=cpu,
        accelerator_percent=accelerator * 100 / total,
        cpu_percent=cpu * 100 / total,
    )


def split_summary(split: MemorySplit) -> str:
    return (
        f"Total Size {format_bytes(split.total)} | "
        f"GPU {split.accelerator_percent:.2f}% | CPU {split.cpu_percent:.2f}%"
    )
