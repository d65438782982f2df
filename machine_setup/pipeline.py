from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from .desired_state import SetupConfig
from .engine import Catalog
from .ledger import OutcomeLedger
from .lib.env import DEFAULT_EXEC, PATHS, ExecConfig, Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    config: SetupConfig
    catalog: Catalog
    exe: ExecConfig = DEFAULT_EXEC
    paths: Paths = PATHS


class Step(Protocol):
    """A single idempotent step."""

    step_id: str

    def run(self, ctx: RunContext, ledger: OutcomeLedger) -> OutcomeLedger:
        ...


@dataclass
class PipelineResult:
    ledger: OutcomeLedger
    ran_steps: List[str] = field(default_factory=list)


def run_pipeline(
    *,
    ctx: RunContext,
    steps: Sequence[Step],
    ledger: Optional[OutcomeLedger] = None,
) -> PipelineResult:
    """Run steps in order; every outcome lands in one ledger.

    Steps record failures rather than raise, so a failing step never stops
    the ones after it.
    """

    result = PipelineResult(ledger=ledger if ledger is not None else OutcomeLedger())

    for step in steps:
        logger.info("Running step %s", step.step_id)
        result.ledger = step.run(ctx, result.ledger)
        result.ran_steps.append(step.step_id)

    return result
