from __future__ import annotations

import logging
import os
import platform
import shlex
from pathlib import Path
from typing import Dict

from .env import PATHS

logger = logging.getLogger(__name__)


def read_os_release(path: str = PATHS.os_release) -> Dict[str, str]:
    """Parse /etc/os-release into a dict (empty if unreadable)."""

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        return {}

    info: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        info[key.strip()] = parts[0] if parts else ""
    return info


def os_pretty_name(path: str = PATHS.os_release) -> str:
    return read_os_release(path).get("PRETTY_NAME") or platform.system() or "unknown"


def hostname() -> str:
    return platform.node() or "unknown"


def machine() -> str:
    return platform.machine() or "x86_64"


def is_root() -> bool:
    return os.geteuid() == 0
