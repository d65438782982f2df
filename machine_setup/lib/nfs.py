from __future__ import annotations

import logging
from typing import List

from ..errors import UnreachableServer
from .command import have_binary, run_cmd
from .env import DEFAULT_EXEC, ExecConfig

logger = logging.getLogger(__name__)


def parse_showmount(output: str) -> List[str]:
    """Export paths from `showmount -e` output (header line skipped)."""

    paths: List[str] = []
    for line in output.splitlines():
        if line.startswith("Export"):
            continue
        fields = line.split()
        if not fields:
            continue
        paths.append(fields[0])
    return paths


def list_exports(server: str, *, exe: ExecConfig = DEFAULT_EXEC) -> List[str]:
    """Query a server's advertised exports.

    Raises UnreachableServer when the query does not complete. An empty list is
    a valid answer (server reachable, nothing exported).
    """

    r = run_cmd(["showmount", "-e", server], check=False, exe=exe, mutating=False)
    if not r.ok:
        reason = r.stderr.strip().splitlines()[-1] if r.stderr.strip() else f"showmount exited {r.returncode}"
        raise UnreachableServer(server, reason)
    exports = parse_showmount(r.stdout)
    logger.info("Server %s advertises %d export(s)", server, len(exports))
    return exports


def have_showmount() -> bool:
    return have_binary("showmount")
