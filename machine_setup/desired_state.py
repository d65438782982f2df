from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from .errors import ConfigError
from .models import MountSpec, PackageSpec

logger = logging.getLogger(__name__)

DEFAULT_NFS_VERSION = "4"
DEFAULT_MOUNT_BASE = "/mnt"


def parse_mount_record(record: str, *, default_options: str) -> MountSpec:
    """Parse `server:remotePath:localMountPoint[:options]` into a MountSpec."""

    fields = [f.strip() for f in str(record).strip().split(":", 3)]
    while len(fields) < 4:
        fields.append("")
    server, remote_path, mount_point, options = fields
    if not server or not remote_path or not mount_point:
        raise ConfigError(f"Invalid mount record (want server:remotePath:localMountPoint:options): {record!r}")
    return MountSpec(
        server=server,
        remote_path=remote_path,
        local_mount_point=mount_point,
        options=options or default_options,
    )


def _is_blank_record(record: Any) -> bool:
    text = str(record or "").strip()
    return not text or text.startswith("#")


@dataclass(frozen=True)
class NfsSettings:
    server_ip: Optional[str] = None
    version: str = DEFAULT_NFS_VERSION
    mount_base: str = DEFAULT_MOUNT_BASE
    mount_name: Optional[str] = None
    mount_names: Dict[str, str] = field(default_factory=dict)

    @property
    def default_options(self) -> str:
        return f"rw,nfsvers={self.version}"


def _nfs_settings(raw: Dict[str, Any]) -> NfsSettings:
    nfs = raw.get("nfs") or {}
    if not isinstance(nfs, dict):
        raise ConfigError("nfs must be a mapping")
    names = nfs.get("mount_names") or {}
    if not isinstance(names, dict):
        raise ConfigError("nfs.mount_names must be a mapping of export path to name")
    return NfsSettings(
        server_ip=str(nfs.get("server_ip") or "").strip() or None,
        version=str(nfs.get("version") or DEFAULT_NFS_VERSION),
        mount_base=str(nfs.get("mount_base") or DEFAULT_MOUNT_BASE).rstrip("/") or "/",
        mount_name=str(nfs.get("mount_name") or "").strip() or None,
        mount_names={str(k): str(v) for k, v in names.items() if v},
    )


def _parse_mounts(raw: Dict[str, Any], nfs: NfsSettings) -> Tuple[MountSpec, ...]:
    records = (raw.get("nfs") or {}).get("mounts") or []
    if not isinstance(records, list):
        raise ConfigError("nfs.mounts must be a list of 'server:remotePath:localMountPoint:options' strings")
    return tuple(
        parse_mount_record(r, default_options=nfs.default_options) for r in records if not _is_blank_record(r)
    )


@dataclass(frozen=True)
class SetupConfig:
    raw: Dict[str, Any]
    path: str = ""
    nfs: NfsSettings = field(default_factory=NfsSettings)
    mounts: Tuple[MountSpec, ...] = ()

    @property
    def packages_raw(self) -> Dict[str, Any]:
        pkgs = self.raw.get("packages") or {}
        if not isinstance(pkgs, dict):
            raise ConfigError("packages must be a mapping of package name to true/false or settings")
        return pkgs

    def package_specs(self, known: Sequence[str] = ()) -> List[PackageSpec]:
        """One spec per configured package, then any `known` name left out (disabled)."""

        specs: List[PackageSpec] = []
        for name, value in self.packages_raw.items():
            name = str(name)
            if value is None or isinstance(value, bool):
                specs.append(PackageSpec(name=name, desired_enabled=bool(value)))
            elif isinstance(value, dict):
                params = {str(k): v for k, v in value.items() if k != "enabled"}
                specs.append(PackageSpec(name=name, desired_enabled=bool(value.get("enabled", False)), params=params))
            else:
                raise ConfigError(f"packages.{name} must be true/false or a mapping")

        seen = {s.name for s in specs}
        specs.extend(PackageSpec(name=n, desired_enabled=False) for n in known if n not in seen)
        return specs

    def is_enabled(self, name: str) -> bool:
        return any(s.desired_enabled for s in self.package_specs() if s.name == name)


def config_from_raw(raw: Dict[str, Any], path: str = "") -> SetupConfig:
    nfs = _nfs_settings(raw)
    return SetupConfig(raw=raw, path=path, nfs=nfs, mounts=_parse_mounts(raw, nfs))


def load_setup_config(path: str) -> SetupConfig:
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    return config_from_raw(raw, path=str(p))


_TOP_NFS = re.compile(r"^nfs:\s*(#.*)?$")
_TOP_KEY = re.compile(r"^[^\s#-]")
_MOUNTS = re.compile(r"^(\s+)mounts:\s*(.*)$")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _item(indent: int, spec: MountSpec) -> str:
    return f"{' ' * indent}- {json.dumps(spec.to_record())}\n"


def _insert_records(lines: List[str], new: Sequence[MountSpec], existing: Sequence[str]) -> List[str]:
    nfs_idx = next((i for i, ln in enumerate(lines) if _TOP_NFS.match(ln.rstrip("\n"))), None)
    if nfs_idx is None:
        if any(ln.startswith("nfs:") for ln in lines):
            raise ConfigError("Cannot merge mounts: 'nfs:' is not a block mapping")
        block = ["\n", "nfs:\n", "  mounts:\n"] + [_item(4, s) for s in new]
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        return lines + block

    end = len(lines)
    for i in range(nfs_idx + 1, len(lines)):
        if _TOP_KEY.match(lines[i]):
            end = i
            break

    mounts_idx = None
    m = None
    for i in range(nfs_idx + 1, end):
        m = _MOUNTS.match(lines[i].rstrip("\n"))
        if m:
            mounts_idx = i
            break

    if m is None or mounts_idx is None:
        child_indent = next(
            (_indent(ln) for ln in lines[nfs_idx + 1 : end] if ln.strip() and not ln.lstrip().startswith("#")),
            2,
        )
        block = [f"{' ' * child_indent}mounts:\n"] + [_item(child_indent + 2, s) for s in new]
        return lines[: nfs_idx + 1] + block + lines[nfs_idx + 1 :]

    key_indent = len(m.group(1))
    inline = m.group(2).split("#", 1)[0].strip()

    if inline:
        # Inline flow list (e.g. `mounts: []`): rewrite it as a block list.
        block = [f"{' ' * key_indent}mounts:\n"]
        block += [f"{' ' * (key_indent + 2)}- {json.dumps(r)}\n" for r in existing]
        block += [_item(key_indent + 2, s) for s in new]
        return lines[:mounts_idx] + block + lines[mounts_idx + 1 :]

    last_item = mounts_idx
    item_indent = key_indent + 2
    for i in range(mounts_idx + 1, end):
        ln = lines[i]
        stripped = ln.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if _indent(ln) > key_indent or (stripped.startswith("-") and _indent(ln) >= key_indent):
            if last_item == mounts_idx and stripped.startswith("-"):
                item_indent = _indent(ln)
            last_item = i
            continue
        break

    if not lines[last_item].endswith("\n"):
        lines[last_item] += "\n"
    insert = [_item(item_indent, s) for s in new]
    return lines[: last_item + 1] + insert + lines[last_item + 1 :]


def merge_mounts(path: str, specs: Iterable[MountSpec]) -> List[MountSpec]:
    """Add mount records to nfs.mounts in the desired-state file.

    Comments and layout are kept: records are inserted as text into the
    existing list, or a new `nfs:`/`mounts:` block is appended. Records whose
    (server, remotePath) is already listed are not added again.

    Returns the specs actually written.
    """

    p = Path(path)
    text = p.read_text(encoding="utf-8") if p.exists() else ""
    raw = (yaml.safe_load(text) or {}) if text.strip() else {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    nfs = _nfs_settings(raw)
    existing_records = [str(r) for r in ((raw.get("nfs") or {}).get("mounts") or []) if not _is_blank_record(r)]
    seen = {parse_mount_record(r, default_options=nfs.default_options).identity for r in existing_records}

    new: List[MountSpec] = []
    for s in specs:
        if s.identity in seen:
            logger.info("Already in %s: %s", path, s.source)
            continue
        seen.add(s.identity)
        new.append(s)

    if not new:
        return []

    lines = text.splitlines(keepends=True)
    updated = "".join(_insert_records(lines, new, existing_records))

    check = yaml.safe_load(updated) or {}
    written = {m.identity for m in config_from_raw(check if isinstance(check, dict) else {}).mounts}
    if not all(s.identity in written for s in new):
        raise ConfigError(f"Could not merge mounts into {path}; add them manually")

    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(updated, encoding="utf-8")
    logger.info("Wrote %d mount record(s) to %s", len(new), path)
    return new


def append_run_record(path: str, record: str) -> None:
    """Append a (#-commented) run record; the file stays valid YAML."""

    p = Path(path)
    prefix = ""
    if p.exists():
        current = p.read_text(encoding="utf-8")
        if current and not current.endswith("\n"):
            prefix = "\n"
    with p.open("a", encoding="utf-8") as f:
        f.write(prefix + "\n" + record.rstrip("\n") + "\n")
