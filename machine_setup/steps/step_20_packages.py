from __future__ import annotations

from ..engine import ReconciliationEngine
from ..ledger import OutcomeLedger
from ..pipeline import RunContext


class PackagesStep:
    """Reconcile every configured package, then catalog packages left unconfigured."""

    step_id = "20_packages"

    def run(self, ctx: RunContext, ledger: OutcomeLedger) -> OutcomeLedger:
        specs = ctx.config.package_specs(ctx.catalog.names())
        engine = ReconciliationEngine(ctx.catalog, exe=ctx.exe)
        return engine.reconcile_all(specs, ledger)
