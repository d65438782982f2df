from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ..errors import CommandError
from .command import run_cmd
from .env import DEFAULT_EXEC, ExecConfig

logger = logging.getLogger(__name__)


def fetch_text(url: str, *, exe: ExecConfig = DEFAULT_EXEC) -> str:
    """GET a URL and return the body. Raises CommandError on HTTP/transport errors."""

    r = run_cmd(["curl", "-fsSL", url], exe=exe, mutating=False)
    return r.stdout


def fetch_json(url: str, *, exe: ExecConfig = DEFAULT_EXEC) -> Optional[Any]:
    """Best-effort JSON GET; None when the request or decoding fails."""

    try:
        return json.loads(fetch_text(url, exe=exe))
    except (CommandError, ValueError) as e:
        logger.debug("JSON fetch failed for %s: %s", url, e)
        return None


def download(url: str, dest: str, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
    run_cmd(["curl", "-fsSL", url, "-o", dest], exe=exe)
