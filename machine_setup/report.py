from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .ledger import OutcomeLedger
from .models import Category

TITLES = {
    Category.INSTALLED: "Installed",
    Category.UPDATED: "Updated",
    Category.CURRENT: "Already current",
    Category.SKIPPED: "Skipped",
    Category.FAILED: "Failed",
}


def render_summary(ledger: OutcomeLedger) -> str:
    """Human-readable end-of-run summary: counts, then items per category."""

    lines: List[str] = ["", "Setup summary", "============="]
    for category in Category:
        lines.append(f"  {TITLES[category] + ':':<17}{len(ledger.bucket(category))}")
    if ledger.warnings:
        lines.append(f"  {'Warnings:':<17}{len(ledger.warnings)}")

    for category in Category:
        items = ledger.bucket(category)
        if not items:
            continue
        lines.append("")
        lines.append(f"{TITLES[category]}:")
        lines.extend(f"  - {r.describe()}" for r in items)

    if ledger.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in ledger.warnings)

    lines.append("")
    if ledger.has_failures:
        lines.append("Setup finished with failures; see the log for details.")
    else:
        lines.append("Setup finished successfully.")
    return "\n".join(lines) + "\n"


def render_run_record(
    ledger: OutcomeLedger,
    *,
    host: str,
    os_name: str,
    version: str,
    when: Optional[datetime] = None,
) -> str:
    """A run record as YAML comments, for appending to the desired-state file."""

    when = when or datetime.now()
    lines = [
        "# ---- machine-setup run ----",
        f"# date: {when.strftime('%Y-%m-%d %H:%M:%S')}",
        f"# host: {host}",
        f"# os: {os_name}",
        f"# machine-setup: {version}",
    ]
    for category in Category:
        items = ledger.bucket(category)
        if items:
            lines.append(f"# {category.value}: " + ", ".join(r.describe() for r in items))
    for w in ledger.warnings:
        lines.append(f"# warning: {w}")
    return "\n".join(lines) + "\n"
