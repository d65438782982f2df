from __future__ import annotations

import logging
from typing import Optional, Sequence

from .command import run_cmd
from .env import DEFAULT_EXEC, ExecConfig

logger = logging.getLogger(__name__)

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def apt_update(*, exe: ExecConfig = DEFAULT_EXEC) -> None:
    run_cmd(["apt-get", "update", "-qq"], env=_NONINTERACTIVE, exe=exe)


def apt_install(packages: Sequence[str], *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    if not packages:
        return
    run_cmd(["apt-get", "install", "-y", "-qq", *packages], env=_NONINTERACTIVE, exe=exe)


def apt_upgrade(packages: Sequence[str], *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    if not packages:
        return
    run_cmd(
        ["apt-get", "install", "-y", "-qq", "--only-upgrade", *packages],
        env=_NONINTERACTIVE,
        exe=exe,
    )


def dpkg_install(deb_path: str, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    run_cmd(["dpkg", "-i", deb_path], env=_NONINTERACTIVE, exe=exe)


def dpkg_architecture(*, exe: ExecConfig = DEFAULT_EXEC) -> str:
    r = run_cmd(["dpkg", "--print-architecture"], exe=exe, mutating=False)
    return r.stdout.strip()


def parse_dpkg_status(output: str) -> Optional[str]:
    """Parse `dpkg-query -W -f='${Status}\\t${Version}'` output.

    Only fully installed packages count ("install ok installed"); removed
    packages that left config files behind ("deinstall ok config-files") do not.
    """

    line = output.strip()
    if not line:
        return None
    status, _, version = line.partition("\t")
    if not status.strip().endswith(" installed"):
        return None
    return version.strip() or None


def parse_policy(output: str) -> tuple[Optional[str], Optional[str]]:
    """Return (installed, candidate) from `apt-cache policy PKG` output.

    "(none)" maps to None for both fields.
    """

    installed: Optional[str] = None
    candidate: Optional[str] = None
    for raw in output.splitlines():
        line = raw.strip()
        if line.startswith("Installed:"):
            installed = line.split(":", 1)[1].strip()
        elif line.startswith("Candidate:"):
            candidate = line.split(":", 1)[1].strip()
        if installed is not None and candidate is not None:
            break

    def _clean(v: Optional[str]) -> Optional[str]:
        if not v or v == "(none)":
            return None
        return v

    return _clean(installed), _clean(candidate)


def installed_version(package: str, *, exe: ExecConfig = DEFAULT_EXEC) -> Optional[str]:
    r = run_cmd(
        ["dpkg-query", "-W", "-f=${Status}\t${Version}", package],
        check=False,
        exe=exe,
        mutating=False,
    )
    if not r.ok:
        return None
    return parse_dpkg_status(r.stdout)


def candidate_version(package: str, *, exe: ExecConfig = DEFAULT_EXEC) -> Optional[str]:
    r = run_cmd(["apt-cache", "policy", package], check=False, exe=exe, mutating=False)
    if not r.ok:
        logger.debug("apt-cache policy failed for %s (rc=%s)", package, r.returncode)
        return None
    _, candidate = parse_policy(r.stdout)
    return candidate
