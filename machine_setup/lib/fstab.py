from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import MountError
from .env import DEFAULT_EXEC, PATHS, ExecConfig

logger = logging.getLogger(__name__)

BOOT_RETRY_OPTIONS = ("_netdev", "nofail")


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return " ".join(
            [
                _escape(self.spec),
                _escape(self.mountpoint),
                self.fstype,
                self.options,
                str(self.dump),
                str(self.passno),
            ]
        )


def _escape(field: str) -> str:
    return field.replace("\\", "\\134").replace(" ", "\\040").replace("\t", "\\011")


def unescape(field: str) -> str:
    """Decode the octal escapes used by fstab and /proc/mounts (e.g. \\040)."""

    out: list[str] = []
    i = 0
    while i < len(field):
        ch = field[i]
        digits = field[i + 1 : i + 4]
        if ch == "\\" and len(digits) == 3 and all(d in "01234567" for d in digits):
            out.append(chr(int(digits, 8)))
            i += 4
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def normalize_source(spec: str) -> str:
    """Canonical `server:/path` form: no trailing slash on the remote path."""

    server, sep, path = spec.partition(":")
    if not sep:
        return spec
    path = path.rstrip("/") or "/"
    return f"{server}:{path}"


def with_boot_retry(options: str) -> str:
    """Append _netdev,nofail so a failed mount never blocks boot and is retried."""

    opts = [o for o in options.split(",") if o]
    for flag in BOOT_RETRY_OPTIONS:
        if flag not in opts:
            opts.append(flag)
    return ",".join(opts)


def parse_fstab(text: str) -> List[FstabEntry]:
    entries: List[FstabEntry] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) < 3:
            logger.debug("Ignoring malformed fstab line: %s", raw)
            continue
        dump = int(fields[4]) if len(fields) > 4 and fields[4].isdigit() else 0
        passno = int(fields[5]) if len(fields) > 5 and fields[5].isdigit() else 0
        entries.append(
            FstabEntry(
                spec=unescape(fields[0]),
                mountpoint=unescape(fields[1]),
                fstype=fields[2],
                options=fields[3] if len(fields) > 3 else "defaults",
                dump=dump,
                passno=passno,
            )
        )
    return entries


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


class FstabTable:
    """The persisted (boot-time) mount table.

    Append-only. The first append made through an instance copies the current
    file to `<path>.backup.<timestamp>`; one instance is used per run.
    """

    def __init__(
        self,
        path: str = PATHS.fstab,
        *,
        exe: ExecConfig = DEFAULT_EXEC,
        timestamp: Callable[[], str] = _timestamp,
    ) -> None:
        self.path = Path(path)
        self.exe = exe
        self._timestamp = timestamp
        self.backup_path: Optional[Path] = None

    def entries(self) -> List[FstabEntry]:
        if not self.path.exists():
            return []
        return parse_fstab(self.path.read_text(encoding="utf-8"))

    def find(self, source: str) -> Optional[FstabEntry]:
        key = normalize_source(source)
        for e in self.entries():
            if normalize_source(e.spec) == key:
                return e
        return None

    def has_source(self, source: str) -> bool:
        return self.find(source) is not None

    def _backup_once(self) -> None:
        if self.backup_path is not None or not self.path.exists():
            return
        dst = self.path.with_name(f"{self.path.name}.backup.{self._timestamp()}")
        if self.exe.dry_run:
            logger.info("Would back up %s -> %s", str(self.path), str(dst))
        else:
            try:
                shutil.copy2(self.path, dst)
            except OSError as e:
                raise MountError(f"Could not back up {self.path}: {e}") from e
            logger.info("Backed up %s -> %s", str(self.path), str(dst))
        self.backup_path = dst

    def append(self, entry: FstabEntry) -> bool:
        """Append entry unless its source is already present. Returns True if written."""

        if self.has_source(entry.spec):
            logger.info("fstab already has %s; not adding", entry.spec)
            return False

        self._backup_once()
        line = entry.render() + "\n"

        if self.exe.dry_run:
            logger.info("Would append to %s: %s", str(self.path), line.strip())
            return True

        try:
            prefix = ""
            if self.path.exists():
                current = self.path.read_text(encoding="utf-8")
                if current and not current.endswith("\n"):
                    prefix = "\n"
            with self.path.open("a", encoding="utf-8") as f:
                f.write(prefix + line)
        except OSError as e:
            raise MountError(f"Failed to add fstab entry for {entry.spec}: {e}") from e

        logger.info("Added fstab entry: %s", line.strip())
        return True
