from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar
from urllib.parse import urlsplit

T = TypeVar("T")


@dataclass
class ValidationResult(Generic[T]):
    value: Optional[T]
    error: Optional[str]

    @property
    def is_valid(self) -> bool:
        return self.error is None


def validate_base_url(
    value: str | None,
    *,
    default: Optional[str] = None,
    default_port: Optional[int] = None,
    name: str = "base URL",
) -> ValidationResult[str]:
    """Normalise a daemon address such as ``127.0.0.1:11434`` to ``http://127.0.0.1:11434``.

    ``default_port`` is only added to bare ``host`` values, the way
    ``OLLAMA_HOST`` is usually written.
    """
    raw = (value or "").strip()
    if not raw:
        if default is None:
            return ValidationResult(None, f"{name} must be provided")
        raw = default
    bare = "://" not in raw
    if bare:
        raw = f"http://{raw}"
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as exc:
        return ValidationResult(None, f"Invalid {name}: {exc}")
    if parts.scheme not in ("http", "https"):
        return ValidationResult(None, f"{name} must use http or https, got {parts.scheme!r}")
    if not parts.hostname:
        return ValidationResult(None, f"{name} has no host: {value!r}")
    if port is not None and not 1 <= port <= 65535:
        return ValidationResult(None, f"{name} port must be between 1 and 65535")
    url = raw.rstrip("/")
    if bare and port is None and default_port is not None and not parts.path.strip("/"):
        url = f"{url}:{default_port}"
    return ValidationResult(url, None)
