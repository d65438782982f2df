from __future__ import annotations

import logging
from pathlib import Path

from .errors import ConfigError, PreflightError
from .lib.command import have_binary
from .lib.env import DEFAULT_EXEC, ExecConfig
from .lib.host import is_root

logger = logging.getLogger(__name__)


def run_preflight(config_path: str, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    """Fail fast before anything is touched.

    The root check is waived in dry-run.
    """

    if not is_root():
        if not exe.dry_run:
            raise PreflightError("This script must be run as root (try sudo)")
        logger.warning("Not running as root; continuing because of --dry-run")

    if not have_binary("apt-get"):
        raise PreflightError("apt-get not found; only Debian/Ubuntu systems are supported")

    if not Path(config_path).is_file():
        raise ConfigError(f"Config file not found: {config_path}")
