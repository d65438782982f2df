from __future__ import annotations

import logging
import os
from typing import Callable, Iterable

from .errors import MountError
from .ledger import OutcomeLedger
from .lib.env import DEFAULT_EXEC, ExecConfig
from .lib.fstab import FstabEntry, FstabTable, with_boot_retry
from .lib.mounts import LiveMountTable, make_mount_point, mount_from_fstab
from .models import ActionResult, Category, MountAction, MountOutcome, MountSpec, MountState, ObservedMount

logger = logging.getLogger(__name__)

Mounter = Callable[..., None]


def _same_path(a: str, b: str) -> bool:
    return os.path.normpath(a) == os.path.normpath(b)


class MountReconciler:
    """Make each desired NFS mount active now and recorded for boot.

    Live state is consulted first: a source mounted anywhere is left alone,
    which keeps the same export from being mounted twice.
    """

    def __init__(
        self,
        live: LiveMountTable,
        fstab: FstabTable,
        *,
        exe: ExecConfig = DEFAULT_EXEC,
        mounter: Mounter = mount_from_fstab,
        make_dir: Callable[..., None] = make_mount_point,
    ) -> None:
        self.live = live
        self.fstab = fstab
        self.exe = exe
        self.mounter = mounter
        self.make_dir = make_dir

    def observe(self, spec: MountSpec) -> ObservedMount:
        actual = self.live.mounted_at(spec.source)
        if actual is not None:
            if _same_path(actual, spec.local_mount_point):
                return ObservedMount(MountState.ALREADY_MOUNTED_CORRECTLY, actual)
            return ObservedMount(MountState.ALREADY_MOUNTED_ELSEWHERE, actual)

        if self.fstab.has_source(spec.source):
            if self.live.is_mount_point(spec.local_mount_point):
                return ObservedMount(MountState.ALREADY_MOUNTED_CORRECTLY, spec.local_mount_point)
            return ObservedMount(MountState.RECORDED_BUT_NOT_MOUNTED)

        return ObservedMount(MountState.ABSENT)

    def reconcile(self, spec: MountSpec) -> MountOutcome:
        item = spec.source
        mp = spec.local_mount_point
        observed = self.observe(spec)

        if observed.satisfied:
            detail = f"already mounted at {observed.actual_path}"
            return MountOutcome(observed, MountAction.NONE, ActionResult(item, Category.CURRENT, detail))

        action = MountAction.CREATE_AND_MOUNT
        if observed.state is MountState.RECORDED_BUT_NOT_MOUNTED:
            action = MountAction.MOUNT

        recorded = self.fstab.find(spec.source)
        if recorded is not None and not _same_path(recorded.mountpoint, mp):
            logger.info("fstab records %s at %s; using that mount point", spec.source, recorded.mountpoint)
            mp = recorded.mountpoint

        if action is MountAction.CREATE_AND_MOUNT:
            try:
                self.make_dir(mp, exe=self.exe)
            except MountError as e:
                return MountOutcome(observed, action, ActionResult(item, Category.FAILED, str(e)))

        appended = False
        if recorded is None:
            entry = FstabEntry(spec.source, mp, "nfs", with_boot_retry(spec.options))
            try:
                appended = self.fstab.append(entry)
            except MountError as e:
                return MountOutcome(observed, action, ActionResult(item, Category.FAILED, str(e)))

        try:
            self.mounter(mp, exe=self.exe)
        except MountError as e:
            logger.debug("mount %s failed: %s", mp, e)
            detail = f"could not mount {spec.source} at {mp} (will retry at boot)"
            return MountOutcome(observed, action, ActionResult(item, Category.FAILED, detail))

        category = Category.INSTALLED if appended else Category.UPDATED
        return MountOutcome(observed, action, ActionResult(item, category, f"mounted at {mp}"))

    def reconcile_all(self, specs: Iterable[MountSpec], ledger: OutcomeLedger) -> OutcomeLedger:
        for spec in specs:
            logger.info("NFS mount: %s -> %s", spec.source, spec.local_mount_point)
            ledger.record(self.reconcile(spec).result)
        return ledger
