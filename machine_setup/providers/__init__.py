"""Installer providers: the pluggable install/upgrade mechanics per package.

A provider is also the package's version query, so the classifier asks the
same source that performs the install.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .apt import AptProvider
from .vendor import AwsCliProvider, GitHubReleaseDebProvider, VendorAptRepoProvider, VendorRepo


class InstallerProvider(Protocol):
    def installed_version(self, name: str) -> Optional[str]:
        ...

    def candidate_version(self, name: str) -> Optional[str]:
        ...

    def current_version(self, name: str) -> str:
        ...

    def install(self, name: str) -> None:
        ...

    def upgrade(self, name: str) -> None:
        ...


__all__ = [
    "InstallerProvider",
    "AptProvider",
    "AwsCliProvider",
    "GitHubReleaseDebProvider",
    "VendorAptRepoProvider",
    "VendorRepo",
]
