"""NFS export discovery.

Turns a server's advertised exports into MountSpecs, either by asking the
operator (one export at a time) or automatically during a normal run.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from .desired_state import DEFAULT_MOUNT_BASE, DEFAULT_NFS_VERSION, NfsSettings, merge_mounts
from .errors import CommandError, ConfigError, UnreachableServer
from .ledger import OutcomeLedger
from .lib import apt
from .lib.env import DEFAULT_EXEC, ExecConfig
from .lib.host import is_root
from .lib.mounts import LiveMountTable
from .lib.nfs import have_showmount, list_exports
from .models import MountSpec

logger = logging.getLogger(__name__)

ListExports = Callable[[str], List[str]]


class Prompter(Protocol):
    def ask(self, prompt: str, default: str = "") -> str:
        """Return the operator's answer, or `default` on empty input."""
        ...


class TerminalPrompter:
    def ask(self, prompt: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        try:
            answer = input(f"{prompt}{suffix}: ").strip()
        except EOFError:
            answer = ""
        return answer or default


class NFSExportDiscoverer:
    def __init__(
        self,
        list_exports: ListExports,
        *,
        mount_base: str = DEFAULT_MOUNT_BASE,
        nfs_version: str = DEFAULT_NFS_VERSION,
        mount_name: Optional[str] = None,
        mount_names: Optional[Dict[str, str]] = None,
    ) -> None:
        self._list_exports = list_exports
        self.mount_base = mount_base.rstrip("/") or "/"
        self.nfs_version = str(nfs_version)
        self.mount_name = mount_name
        self.mount_names = dict(mount_names or {})

    @classmethod
    def from_settings(cls, settings: NfsSettings, list_exports: ListExports) -> "NFSExportDiscoverer":
        return cls(
            list_exports,
            mount_base=settings.mount_base,
            nfs_version=settings.version,
            mount_name=settings.mount_name,
            mount_names=settings.mount_names,
        )

    @property
    def default_options(self) -> str:
        return f"rw,nfsvers={self.nfs_version}"

    def discover(self, server: str) -> List[str]:
        """Exports advertised by `server`. Raises UnreachableServer."""

        return list(self._list_exports(server))

    def _under_base(self, name: str) -> str:
        if name.startswith("/"):
            return name
        return posixpath.join(self.mount_base, name)

    def suggest(self, remote_path: str, index: int = 0) -> Tuple[str, str]:
        """Default (mount point, options) for the index-th export."""

        name = self.mount_names.get(remote_path) or self.mount_names.get(remote_path.rstrip("/"))
        if not name and index == 0 and self.mount_name:
            name = self.mount_name
        if not name:
            name = posixpath.basename(remote_path.rstrip("/")) or "nfs"
        return self._under_base(name), self.default_options

    def iter_interactive(self, server: str, exports: Sequence[str], prompter: Prompter) -> Iterator[MountSpec]:
        for index, path in enumerate(exports):
            answer = prompter.ask(f"Export {server}:{path} - (a)dd or (s)kip? [a/s]", "s")
            if not answer.lower().startswith("a"):
                logger.info("Skipped %s:%s", server, path)
                continue

            mount_point, options = self.suggest(path, index)
            mount_point = self._under_base(prompter.ask("Local mount point", mount_point))
            options = prompter.ask("Mount options", options)
            yield MountSpec(server=server, remote_path=path, local_mount_point=mount_point, options=options)

    def iter_automatic(self, server: str, live: LiveMountTable, ledger: OutcomeLedger) -> List[MountSpec]:
        """Every export as a MountSpec; already-mounted ones keep their actual path.

        An unreachable server becomes a ledger warning and an empty list.
        """

        try:
            exports = self.discover(server)
        except UnreachableServer as e:
            ledger.warn(f"NFS discovery skipped: {e}")
            return []

        if not exports:
            ledger.warn(f"NFS server {server} advertises no exports")
            return []

        specs: List[MountSpec] = []
        for index, path in enumerate(exports):
            mount_point, options = self.suggest(path, index)
            spec = MountSpec(server=server, remote_path=path, local_mount_point=mount_point, options=options)
            actual = live.mounted_at(spec.source)
            if actual:
                spec = MountSpec(server=server, remote_path=path, local_mount_point=actual, options=options)
            specs.append(spec)
        return specs


def _ensure_showmount(exe: ExecConfig) -> bool:
    if have_showmount():
        return True
    if not is_root() and not exe.dry_run:
        print("showmount not found. Install nfs-common (requires root) and try again.")
        return False
    print("showmount not found; installing nfs-common...")
    try:
        apt.apt_update(exe=exe)
        apt.apt_install(["nfs-common"], exe=exe)
    except CommandError as e:
        logger.error("Failed to install nfs-common: %s", e)
        print(f"Failed to install nfs-common: {e}")
        return False
    return True


def discover_interactive(
    server: str,
    config_path: str,
    *,
    settings: NfsSettings = NfsSettings(),
    prompter: Optional[Prompter] = None,
    exe: ExecConfig = DEFAULT_EXEC,
    exports_of: Optional[ListExports] = None,
) -> int:
    """`--discover-nfs`: pick exports and merge them into the desired-state file.

    Returns a process exit code. Nothing is written without confirmation.
    """

    prompter = prompter or TerminalPrompter()
    if exports_of is None:
        if not _ensure_showmount(exe):
            return 1

        def exports_of(s: str) -> List[str]:
            return list_exports(s, exe=exe)

    discoverer = NFSExportDiscoverer.from_settings(settings, exports_of)

    print(f"Querying NFS server {server}...")
    try:
        exports = discoverer.discover(server)
    except UnreachableServer as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        return 1

    if not exports:
        print(f"No exports found on {server}.")
        return 0

    print(f"Found {len(exports)} export(s):")
    for path in exports:
        print(f"  {path}")

    selected = list(discoverer.iter_interactive(server, exports, prompter))
    if not selected:
        print("No exports selected; nothing to do.")
        return 0

    print("Selected mounts:")
    for spec in selected:
        print(f"  {spec.to_record()}")

    if not prompter.ask(f"Add these to {config_path}? [y/n]", "n").lower().startswith("y"):
        print("Not saved.")
        return 0

    if exe.dry_run:
        print(f"Dry run: {config_path} not modified.")
        return 0

    try:
        written = merge_mounts(config_path, selected)
    except (ConfigError, OSError) as e:
        logger.error("Could not update %s: %s", config_path, e)
        print(f"Error: could not update {config_path}: {e}")
        return 1

    print(f"Added {len(written)} mount(s) to {config_path}.")
    return 0
