"""Value types passed between the catalogs, the selector and the runner."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from memory_utils import MemorySplit, format_bytes, memory_split, natural_time, parse_timestamp


class Tab(str, Enum):
    INSTALL = "Install"
    MANAGE = "Manage"
    MONITOR = "Monitor"


class ManageAction(str, Enum):
    UPDATE = "Update"
    DELETE = "Delete"
    CHAT = "Chat"

    @property
    def shortcut(self) -> str:
        return self.value[0].lower()


class MonitorChoice(str, Enum):
    KEEP_LOADED = "load"
    UNLOAD = "free"
    NOTHING = "none"

    @property
    def label(self) -> str:
        return {
            MonitorChoice.KEEP_LOADED: "Keep loaded in memory (indefinitely)",
            MonitorChoice.UNLOAD: "Free up memory by unloading",
            MonitorChoice.NOTHING: "Do nothing",
        }[self]


class ItemKind(Enum):
    INSTALLABLE = "installable"
    INSTALLED = "installed"
    RUNNING = "running"


@dataclass(frozen=True)
class ModelDetails:
    format: str = ""
    family: str = ""
    families: Tuple[str, ...] = ()
    parameter_size: str = ""
    quantization_level: str = ""

    @classmethod
    def from_api(cls, data: Optional[dict]) -> "ModelDetails":
        data = data or {}
        return cls(
            format=str(data.get("format") or ""),
            family=str(data.get("family") or ""),
            families=tuple(data.get("families") or ()),
            parameter_size=str(data.get("parameter_size") or ""),
            quantization_level=str(data.get("quantization_level") or ""),
        )


@dataclass(frozen=True)
class CatalogEntry:
    kind: ClassVar[ItemKind] = ItemKind.INSTALLABLE

    name: str
    desc: str = ""
    pulls: str = ""
    tag_count: str = ""
    updated: str = ""
    labels: Tuple[str, ...] = ()

    def title(self) -> str:
        return self.name

    def description(self) -> str:
        return f"↓ {self.pulls} • {self.tag_count} tags • {self.updated}"

    def filter_value(self) -> str:
        return self.name


@dataclass(frozen=True)
class InstalledModel:
    kind: ClassVar[ItemKind] = ItemKind.INSTALLED

    name: str
    digest: str = ""
    size: int = 0
    modified_at: Optional[datetime] = None
    details: ModelDetails = field(default_factory=ModelDetails)

    @classmethod
    def from_api(cls, data: dict) -> "InstalledModel":
        return cls(
            name=str(data.get("name") or data.get("model") or ""),
            digest=str(data.get("digest") or ""),
            size=int(data.get("size") or 0),
            modified_at=parse_timestamp(data.get("modified_at")),
            details=ModelDetails.from_api(data.get("details")),
        )

    @property
    def is_multimodal(self) -> bool:
        return "clip" in self.details.families

    def title(self) -> str:
        return self.name

    def description(self) -> str:
        return f"{format_bytes(self.size)} • {self.details.parameter_size} • {natural_time(self.modified_at)}"

    def filter_value(self) -> str:
        return self.name


@dataclass(frozen=True)
class RunningModel:
    kind: ClassVar[ItemKind] = ItemKind.RUNNING

    name: str
    digest: str = ""
    size: int = 0
    size_vram: int = 0
    expires_at: Optional[datetime] = None
    details: ModelDetails = field(default_factory=ModelDetails)

    @classmethod
    def from_api(cls, data: dict) -> "RunningModel":
        return cls(
            name=str(data.get("name") or data.get("model") or ""),
            digest=str(data.get("digest") or ""),
            size=int(data.get("size") or 0),
            size_vram=int(data.get("size_vram") or 0),
            expires_at=parse_timestamp(data.get("expires_at")),
            details=ModelDetails.from_api(data.get("details")),
        )

    @property
    def memory(self) -> MemorySplit:
        return memory_split(self.size, self.size_vram)

    def title(self) -> str:
        return self.name

    def description(self) -> str:
        return f"{self.details.parameter_size} • {natural_time(self.expires_at)}"

    def filter_value(self) -> str:
        return self.name


Listable = Union[CatalogEntry, InstalledModel, RunningModel]


@dataclass
class SelectionContext:
    """Result of one picker session.

    At most one of the three ``selected_*`` slots is filled, matching ``action``.
    """

    action: Optional[Tab] = None
    manage_action: Optional[ManageAction] = None
    installable: Optional[CatalogEntry] = None
    installed: Optional[InstalledModel] = None
    running: Optional[RunningModel] = None
    approved_actions: Tuple[ManageAction, ...] = ()

    @property
    def selected(self) -> Optional[Listable]:
        if self.action is Tab.INSTALL:
            return self.installable
        if self.action is Tab.MANAGE:
            return self.installed
        if self.action is Tab.MONITOR:
            return self.running
        return None

    @property
    def model_name(self) -> str:
        item = self.selected
        return item.name if item is not None else ""

    @property
    def is_empty(self) -> bool:
        return not self.model_name


@dataclass(frozen=True)
class ProgressEvent:
    status: str
    digest: str = ""
    total: int = 0
    completed: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "ProgressEvent":
        return cls(
            status=str(data.get("status") or ""),
            digest=str(data.get("digest") or ""),
            total=int(data.get("total") or 0),
            completed=int(data.get("completed") or 0),
        )

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def fraction(self) -> Optional[float]:
        if self.total <= 0:
            return None
        return max(0.0, min(1.0, self.completed / self.total))
