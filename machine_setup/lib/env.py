from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    config_default: str = "setup.yaml"
    log_default: str = "/var/log/machine-setup.log"
    fstab: str = "/etc/fstab"
    proc_mounts: str = "/proc/mounts"
    os_release: str = "/etc/os-release"


PATHS = Paths()


@dataclass(frozen=True)
class ExecConfig:
    """How external commands are run for this invocation.

    - debug: surface captured command output in the log at INFO.
    - dry_run: log mutating commands instead of executing them.
      Read-only queries (dpkg-query, apt-cache, showmount) still run.
    """

    debug: bool = False
    dry_run: bool = False


DEFAULT_EXEC = ExecConfig()
