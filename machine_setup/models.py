from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .lib.fstab import normalize_source


class PackageState(Enum):
    ABSENT = "absent"
    CURRENT_VERSION = "current"
    UPGRADE_AVAILABLE = "upgrade_available"


class Category(Enum):
    """Outcome buckets, in the order they are reported."""

    INSTALLED = "installed"
    UPDATED = "updated"
    CURRENT = "current"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PackageSpec:
    name: str
    desired_enabled: bool
    params: Mapping[str, Any] = field(default_factory=dict)

    def param(self, key: str, default: Any = None) -> Any:
        value = self.params.get(key, default)
        if isinstance(value, str):
            value = value.strip()
            return value or default
        return value


@dataclass(frozen=True)
class ActionResult:
    item: str
    category: Category
    detail: str = ""
    old_version: Optional[str] = None
    new_version: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.category is Category.FAILED

    def describe(self) -> str:
        if not self.detail:
            return self.item
        if self.failed:
            return f"{self.item}: {self.detail}"
        return f"{self.item} ({self.detail})"


@dataclass(frozen=True)
class MountSpec:
    """A desired NFS mount. Identity is (server, remote_path) only."""

    server: str
    remote_path: str
    local_mount_point: str
    options: str

    @property
    def source(self) -> str:
        return normalize_source(f"{self.server}:{self.remote_path}")

    @property
    def identity(self) -> Tuple[str, str]:
        server, _, path = self.source.partition(":")
        return server, path

    def to_record(self) -> str:
        return f"{self.server}:{self.remote_path}:{self.local_mount_point}:{self.options}"


class MountState(Enum):
    ALREADY_MOUNTED_ELSEWHERE = "mounted_elsewhere"
    ALREADY_MOUNTED_CORRECTLY = "mounted"
    RECORDED_BUT_NOT_MOUNTED = "recorded_not_mounted"
    ABSENT = "absent"


@dataclass(frozen=True)
class ObservedMount:
    state: MountState
    actual_path: Optional[str] = None

    @property
    def satisfied(self) -> bool:
        return self.state in (MountState.ALREADY_MOUNTED_ELSEWHERE, MountState.ALREADY_MOUNTED_CORRECTLY)


class MountAction(Enum):
    NONE = "none"
    MOUNT = "mount"
    CREATE_AND_MOUNT = "create_and_mount"


@dataclass(frozen=True)
class MountOutcome:
    observed: ObservedMount
    action: MountAction
    result: ActionResult
