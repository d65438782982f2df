"""Shared fakes and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from machine_setup.errors import MountError, ProviderError
from machine_setup.lib.fstab import FstabTable
from machine_setup.lib.mounts import LiveMountTable


class FakeProvider:
    """In-memory package database.

    installed / candidates map name -> version. A name in `broken` fails to
    install or upgrade.
    """

    def __init__(
        self,
        installed: Optional[Dict[str, str]] = None,
        candidates: Optional[Dict[str, str]] = None,
        broken: Sequence[str] = (),
        candidate_errors: Sequence[str] = (),
    ) -> None:
        self.installed = dict(installed or {})
        self.candidates = dict(candidates or {})
        self.broken = set(broken)
        self.candidate_errors = set(candidate_errors)
        self.calls: List[tuple] = []

    def installed_version(self, name: str) -> Optional[str]:
        return self.installed.get(name)

    def candidate_version(self, name: str) -> Optional[str]:
        if name in self.candidate_errors:
            raise ProviderError("repository unreachable")
        return self.candidates.get(name)

    def current_version(self, name: str) -> str:
        return self.installed.get(name) or "unknown"

    def install(self, name: str) -> None:
        self.calls.append(("install", name))
        if name in self.broken:
            raise ProviderError(f"E: Unable to locate package {name}")
        self.installed[name] = self.candidates.get(name, "1.0")

    def upgrade(self, name: str) -> None:
        self.calls.append(("upgrade", name))
        if name in self.broken:
            raise ProviderError(f"E: could not upgrade {name}")
        self.installed[name] = self.candidates[name]


class ScriptedPrompter:
    """Answers prompts from a list; an empty answer takes the default."""

    def __init__(self, answers: Sequence[str]) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []

    def ask(self, prompt: str, default: str = "") -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if self.answers else ""
        return answer or default


class FakeMounter:
    """Mounts by writing the fstab entry for the mount point into the live table."""

    def __init__(self, fstab: FstabTable, proc_mounts: Path, fail: bool = False) -> None:
        self.fstab = fstab
        self.proc_mounts = proc_mounts
        self.fail = fail
        self.calls: List[str] = []

    def __call__(self, mount_point: str, *, exe=None) -> None:
        self.calls.append(mount_point)
        if self.fail:
            raise MountError(f"Could not mount {mount_point}: mount.nfs: Connection timed out")
        for e in self.fstab.entries():
            if e.mountpoint == mount_point:
                with self.proc_mounts.open("a", encoding="utf-8") as f:
                    f.write(f"{e.spec} {e.mountpoint} nfs4 rw,relatime 0 0\n")
                return
        raise MountError(f"Could not mount {mount_point}: not in fstab")


@pytest.fixture
def proc_mounts(tmp_path: Path) -> Path:
    p = tmp_path / "proc_mounts"
    p.write_text(
        "sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0\n"
        "/dev/sda1 / ext4 rw,relatime 0 0\n",
        encoding="utf-8",
    )
    return p


@pytest.fixture
def fstab_path(tmp_path: Path) -> Path:
    p = tmp_path / "fstab"
    p.write_text("# <file system> <mount point> <type> <options> <dump> <pass>\n/dev/sda1 / ext4 defaults 0 1\n")
    return p


@pytest.fixture
def live(proc_mounts: Path) -> LiveMountTable:
    return LiveMountTable(str(proc_mounts))


@pytest.fixture
def fstab(fstab_path: Path) -> FstabTable:
    return FstabTable(str(fstab_path), timestamp=lambda: "20260101-120000")
