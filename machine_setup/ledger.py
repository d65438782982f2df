from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .models import ActionResult, Category

logger = logging.getLogger(__name__)


@dataclass
class OutcomeLedger:
    """Per-run results, one ordered list per category.

    Passed explicitly into each reconciliation call and returned from it.
    Warnings are notices that never affect the exit status.
    """

    installed: List[ActionResult] = field(default_factory=list)
    updated: List[ActionResult] = field(default_factory=list)
    current: List[ActionResult] = field(default_factory=list)
    skipped: List[ActionResult] = field(default_factory=list)
    failed: List[ActionResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def bucket(self, category: Category) -> List[ActionResult]:
        return getattr(self, category.value)

    def record(self, result: ActionResult) -> ActionResult:
        self.bucket(result.category).append(result)
        if result.failed:
            logger.error("%s", result.describe())
        else:
            logger.info("%s: %s", result.category.value.upper(), result.describe())
        return result

    def warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.warnings.append(message)

    def by_category(self) -> Dict[Category, List[ActionResult]]:
        return {c: list(self.bucket(c)) for c in Category}

    def all_results(self) -> List[ActionResult]:
        out: List[ActionResult] = []
        for c in Category:
            out.extend(self.bucket(c))
        return out

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def exit_code(self) -> int:
        return 1 if self.has_failures else 0
