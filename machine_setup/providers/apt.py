from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..errors import CommandError, ProviderError
from ..lib import apt
from ..lib.env import DEFAULT_EXEC, ExecConfig

logger = logging.getLogger(__name__)


class AptProvider:
    """Install and upgrade through apt-get; versions from dpkg / apt-cache.

    - packages: what to install for this name (defaults to the name itself).
    - query_package: which dpkg package stands for the tool when classifying.
    """

    def __init__(
        self,
        *,
        packages: Optional[Sequence[str]] = None,
        query_package: Optional[str] = None,
        exe: ExecConfig = DEFAULT_EXEC,
    ) -> None:
        self.packages = list(packages) if packages else None
        self.query_package = query_package
        self.exe = exe

    def _packages(self, name: str) -> List[str]:
        return self.packages or [name]

    def _query_name(self, name: str) -> str:
        return self.query_package or name

    def installed_version(self, name: str) -> Optional[str]:
        return apt.installed_version(self._query_name(name), exe=self.exe)

    def candidate_version(self, name: str) -> Optional[str]:
        return apt.candidate_version(self._query_name(name), exe=self.exe)

    def current_version(self, name: str) -> str:
        return self.installed_version(name) or "unknown"

    def install(self, name: str) -> None:
        try:
            apt.apt_install(self._packages(name), exe=self.exe)
        except CommandError as e:
            raise ProviderError(str(e)) from e

    def upgrade(self, name: str) -> None:
        try:
            apt.apt_upgrade(self._packages(name), exe=self.exe)
        except CommandError as e:
            raise ProviderError(str(e)) from e
