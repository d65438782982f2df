from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import CommandError, ProviderError
from .models import PackageState

logger = logging.getLogger(__name__)


class PackageQuery(Protocol):
    """Read-only view of a package database and its repository."""

    def installed_version(self, name: str) -> Optional[str]:
        ...

    def candidate_version(self, name: str) -> Optional[str]:
        ...


@dataclass(frozen=True)
class Classification:
    state: PackageState
    installed_version: Optional[str] = None
    candidate_version: Optional[str] = None


class PackageStateClassifier:
    """Decide whether a package is absent, current or upgradable.

    An unresolvable candidate never produces an upgrade: the classifier
    errs toward doing nothing.
    """

    def __init__(self, query: PackageQuery) -> None:
        self.query = query

    def _candidate(self, name: str) -> Optional[str]:
        try:
            candidate = self.query.candidate_version(name)
        except (CommandError, ProviderError) as e:
            logger.debug("Candidate lookup for %s failed (%s); assuming no upgrade", name, e)
            return None
        if not candidate or candidate == "(none)":
            return None
        return candidate

    def classify(self, name: str) -> Classification:
        installed = self.query.installed_version(name)
        if not installed:
            return Classification(state=PackageState.ABSENT)

        candidate = self._candidate(name)
        if candidate is not None and candidate != installed:
            return Classification(
                state=PackageState.UPGRADE_AVAILABLE,
                installed_version=installed,
                candidate_version=candidate,
            )
        return Classification(
            state=PackageState.CURRENT_VERSION,
            installed_version=installed,
            candidate_version=candidate,
        )
