from __future__ import annotations

import logging

from ..errors import CommandError
from ..ledger import OutcomeLedger
from ..lib import apt
from ..models import ActionResult, Category
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class SystemUpdateStep:
    step_id = "10_system_update"

    def run(self, ctx: RunContext, ledger: OutcomeLedger) -> OutcomeLedger:
        logger.info("Updating package lists")
        try:
            apt.apt_update(exe=ctx.exe)
        except CommandError as e:
            ledger.record(ActionResult("apt-get update", Category.FAILED, str(e)))
        return ledger
