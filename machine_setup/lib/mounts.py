from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..errors import CommandError, MountError
from .command import run_cmd
from .env import DEFAULT_EXEC, PATHS, ExecConfig
from .fstab import normalize_source, unescape

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveMount:
    source: str
    target: str
    fstype: str


def parse_proc_mounts(text: str) -> List[LiveMount]:
    mounts: List[LiveMount] = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        mounts.append(LiveMount(source=unescape(fields[0]), target=unescape(fields[1]), fstype=fields[2]))
    return mounts


def _norm_path(p: str) -> str:
    return os.path.normpath(p) if p else p


class LiveMountTable:
    """The kernel's view of what is mounted right now.

    Re-read on every query so that mounts made earlier in the run are seen.
    """

    def __init__(self, path: str = PATHS.proc_mounts) -> None:
        self.path = Path(path)

    def mounts(self) -> List[LiveMount]:
        try:
            return parse_proc_mounts(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Live mount table %s not found; assuming nothing is mounted", str(self.path))
            return []

    def mounted_at(self, source: str) -> Optional[str]:
        """Return where `server:/path` is mounted, if anywhere."""

        key = normalize_source(source)
        for m in self.mounts():
            if normalize_source(m.source) == key:
                return m.target
        return None

    def is_mount_point(self, path: str) -> bool:
        target = _norm_path(path)
        return any(_norm_path(m.target) == target for m in self.mounts())


def make_mount_point(path: str, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    p = Path(path)
    if exe.dry_run:
        logger.info("Would create mount point %s", str(p))
        return
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise MountError(f"Could not create {path}: {e}") from e


def mount_from_fstab(mount_point: str, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    """Mount using the fstab entry for mount_point."""

    try:
        run_cmd(["mount", mount_point], exe=exe)
    except CommandError as e:
        raise MountError(f"Could not mount {mount_point}: {e}") from e
