"""Error taxonomy.

Only PreflightError (and its ConfigError subclass) aborts a run. Everything
else is caught at the reconciliation seam and recorded in the ledger.
"""

from __future__ import annotations

from typing import Sequence


class SetupError(Exception):
    """Base class for machine-setup errors."""


class PreflightError(SetupError):
    """Missing privilege, unsupported OS family or missing desired state."""


class ConfigError(PreflightError):
    """The desired-state file is missing or malformed."""


class CommandError(SetupError, RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ProviderError(SetupError):
    """An install or upgrade could not be completed."""


class DiscoveryError(SetupError):
    pass


class UnreachableServer(DiscoveryError):
    def __init__(self, server: str, reason: str = "") -> None:
        self.server = server
        self.reason = reason
        super().__init__(f"Could not reach NFS server at {server}" + (f": {reason}" if reason else ""))


class MountError(SetupError):
    """Mount point creation, fstab write or mount call failed."""
