from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from .classifier import PackageStateClassifier
from .errors import CommandError, ProviderError
from .ledger import OutcomeLedger
from .lib.command import have_binary
from .lib.env import DEFAULT_EXEC, ExecConfig
from .models import ActionResult, Category, PackageSpec, PackageState

if TYPE_CHECKING:
    from .providers import InstallerProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostStep:
    """An idempotent follow-up for a package (e.g. `git config --global user.name`).

    Runs only when the package is enabled, `requires_binary` is on PATH and
    `when(spec)` holds. A failure is recorded as its own FAILED entry under
    `label`; the package's own result is left alone.
    """

    label: str
    description: str
    action: Callable[[PackageSpec, ExecConfig], None]
    failure: str
    requires_binary: Optional[str] = None
    when: Optional[Callable[[PackageSpec], bool]] = None


@dataclass(frozen=True)
class CatalogEntry:
    provider: "InstallerProvider"
    post_steps: Sequence[PostStep] = field(default_factory=tuple)


class Catalog:
    """Maps package names to their provider; unknown names get `fallback(name)`."""

    def __init__(
        self,
        entries: dict[str, CatalogEntry],
        fallback: Callable[[str], CatalogEntry],
    ) -> None:
        self.entries = dict(entries)
        self.fallback = fallback

    def names(self) -> list[str]:
        return list(self.entries)

    def entry(self, name: str) -> CatalogEntry:
        if name in self.entries:
            return self.entries[name]
        return self.fallback(name)


class ReconciliationEngine:
    """Apply the package decision table, one result per spec.

    disabled → SKIPPED; absent → install; upgradable → upgrade; current → no-op.
    Failures are returned as FAILED results, never raised.
    """

    def __init__(
        self,
        catalog: Catalog,
        *,
        exe: ExecConfig = DEFAULT_EXEC,
        binary_available: Callable[[str], bool] = have_binary,
    ) -> None:
        self.catalog = catalog
        self.exe = exe
        self.binary_available = binary_available

    def reconcile(self, spec: PackageSpec) -> ActionResult:
        name = spec.name
        if not spec.desired_enabled:
            return ActionResult(name, Category.SKIPPED)

        provider = self.catalog.entry(name).provider
        try:
            c = PackageStateClassifier(provider).classify(name)
        except (CommandError, ProviderError) as e:
            return ActionResult(name, Category.FAILED, f"Could not determine state: {e}")

        if c.state is PackageState.ABSENT:
            try:
                provider.install(name)
            except (ProviderError, CommandError) as e:
                return ActionResult(name, Category.FAILED, f"Install failed: {e}")
            version = provider.current_version(name)
            return ActionResult(name, Category.INSTALLED, version, new_version=version)

        if c.state is PackageState.UPGRADE_AVAILABLE:
            old = c.installed_version
            try:
                provider.upgrade(name)
            except (ProviderError, CommandError) as e:
                return ActionResult(name, Category.FAILED, f"Update failed: {e}", old_version=old)
            new = provider.current_version(name)
            if new == old:
                logger.info("%s: upgrade ran but version unchanged (%s)", name, old)
                return ActionResult(name, Category.CURRENT, old or "", old_version=old, new_version=new)
            return ActionResult(name, Category.UPDATED, f"{old} → {new}", old_version=old, new_version=new)

        return ActionResult(
            name,
            Category.CURRENT,
            c.installed_version or "",
            old_version=c.installed_version,
            new_version=c.installed_version,
        )

    def run_post_steps(self, spec: PackageSpec, ledger: OutcomeLedger) -> OutcomeLedger:
        if not spec.desired_enabled:
            return ledger
        for step in self.catalog.entry(spec.name).post_steps:
            if step.when is not None and not step.when(spec):
                continue
            if step.requires_binary and not self.binary_available(step.requires_binary):
                logger.info("%s: %s not found; skipping", step.description, step.requires_binary)
                continue
            logger.info("%s", step.description)
            try:
                step.action(spec, self.exe)
            except (CommandError, ProviderError) as e:
                logger.debug("%s failed: %s", step.description, e)
                ledger.record(ActionResult(step.label, Category.FAILED, step.failure))
        return ledger

    def reconcile_all(self, specs: Iterable[PackageSpec], ledger: OutcomeLedger) -> OutcomeLedger:
        for spec in specs:
            logger.info("Package: %s", spec.name)
            ledger.record(self.reconcile(spec))
            self.run_post_steps(spec, ledger)
        return ledger
