from .step_10_system_update import SystemUpdateStep
from .step_20_packages import PackagesStep
from .step_30_nfs_mounts import NfsMountsStep

__all__ = [
    "SystemUpdateStep",
    "PackagesStep",
    "NfsMountsStep",
]
