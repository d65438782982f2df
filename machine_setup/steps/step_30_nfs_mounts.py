from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..catalog import NFS_PACKAGE
from ..discovery import NFSExportDiscoverer
from ..ledger import OutcomeLedger
from ..lib.fstab import FstabTable
from ..lib.mounts import LiveMountTable
from ..lib.nfs import list_exports
from ..mount_reconciler import MountReconciler
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class NfsMountsStep:
    """Mount the configured NFS exports, discovering them when none are listed.

    Only runs when the nfs package is enabled.
    """

    step_id = "30_nfs_mounts"

    def __init__(
        self,
        *,
        exports_of: Optional[Callable[[str], List[str]]] = None,
        reconciler: Optional[MountReconciler] = None,
    ) -> None:
        self.exports_of = exports_of
        self.reconciler = reconciler

    def run(self, ctx: RunContext, ledger: OutcomeLedger) -> OutcomeLedger:
        if not ctx.config.is_enabled(NFS_PACKAGE):
            logger.info("NFS disabled; skipping mounts")
            return ledger

        reconciler = self.reconciler or MountReconciler(
            LiveMountTable(ctx.paths.proc_mounts),
            FstabTable(ctx.paths.fstab, exe=ctx.exe),
            exe=ctx.exe,
        )

        specs = list(ctx.config.mounts)
        nfs = ctx.config.nfs
        if not specs and nfs.server_ip:
            logger.info("No NFS mounts configured; discovering exports on %s", nfs.server_ip)
            exports_of = self.exports_of or (lambda server: list_exports(server, exe=ctx.exe))
            discoverer = NFSExportDiscoverer.from_settings(nfs, exports_of)
            specs = discoverer.iter_automatic(nfs.server_ip, reconciler.live, ledger)
        elif not specs:
            ledger.warn("NFS enabled but no mounts or server_ip configured")
            return ledger

        return reconciler.reconcile_all(specs, ledger)
