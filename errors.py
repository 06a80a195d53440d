"""Error taxonomy shared by the picker, the runner and the CLI."""
from __future__ import annotations

from enum import Enum


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class OllamanagerError(Exception):
    severity = ErrorSeverity.ERROR
    recoverable = True

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class FetchError(OllamanagerError):
    """A catalog could not be retrieved or parsed."""


class EmptyResultError(OllamanagerError):
    """A fetch succeeded but produced nothing usable."""


class UserCancelled(OllamanagerError):
    severity = ErrorSeverity.WARNING


class UserDeclined(UserCancelled):
    """The user answered "no" to a confirmation; no operation was performed."""


class NoActionsAvailable(OllamanagerError):
    pass


class DaemonError(OllamanagerError):
    """A pull/delete/load/unload request failed."""


class ModelNotFound(DaemonError):
    pass


class DaemonUnreachable(DaemonError):
    severity = ErrorSeverity.FATAL
    recoverable = False
