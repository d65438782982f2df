from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .catalog import build_catalog
from .desired_state import NfsSettings, append_run_record, load_setup_config
from .discovery import discover_interactive
from .engine import Catalog
from .errors import PreflightError
from .ledger import OutcomeLedger
from .lib.env import PATHS, ExecConfig, Paths
from .lib.host import hostname, os_pretty_name
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import RunContext, Step, run_pipeline
from .preflight import run_preflight
from .report import render_run_record, render_summary
from .steps import NfsMountsStep, PackagesStep, SystemUpdateStep

logger = logging.getLogger(__name__)


def build_steps() -> list:
    return [
        SystemUpdateStep(),
        PackagesStep(),
        NfsMountsStep(),
    ]


def run(
    *,
    config_path: str = PATHS.config_default,
    exe: ExecConfig = ExecConfig(),
    paths: Paths = PATHS,
    catalog: Optional[Catalog] = None,
    steps: Optional[Sequence[Step]] = None,
    preflight: bool = True,
) -> OutcomeLedger:
    """Reconcile the machine against the desired-state file.

    Raises PreflightError before anything is changed; every later problem
    ends up in the returned ledger.
    """

    if preflight:
        run_preflight(config_path, exe=exe)
    config = load_setup_config(config_path)

    ctx = RunContext(config=config, catalog=catalog or build_catalog(exe), exe=exe, paths=paths)
    result = run_pipeline(ctx=ctx, steps=steps if steps is not None else build_steps())
    ledger = result.ledger

    record = render_run_record(
        ledger,
        host=hostname(),
        os_name=os_pretty_name(paths.os_release),
        version=__version__,
    )
    if exe.dry_run:
        logger.info("Dry run: not appending run record to %s", config_path)
    else:
        try:
            append_run_record(config_path, record)
        except OSError as e:
            logger.warning("Could not append run record to %s: %s", config_path, e)
    return ledger


def _nfs_settings_for(config_path: str) -> NfsSettings:
    if not Path(config_path).is_file():
        return NfsSettings()
    return load_setup_config(config_path).nfs


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="machine-setup",
        description="Bring a Debian/Ubuntu machine to the state described in a YAML file.",
    )
    p.add_argument("--config", default=PATHS.config_default, help="Desired-state file (default: setup.yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Log file path")
    p.add_argument("--debug", action="store_true", help="Show command output in the log")
    p.add_argument("--dry-run", action="store_true", help="Log changes instead of making them")
    p.add_argument(
        "--discover-nfs",
        metavar="SERVER",
        default=None,
        help="Interactively pick exports from an NFS server and add them to the config",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    exe = ExecConfig(debug=bool(args.debug), dry_run=bool(args.dry_run))

    configure_logging(log_path=args.log, level=logging.DEBUG if args.debug else logging.INFO)

    try:
        if args.discover_nfs:
            return discover_interactive(
                args.discover_nfs,
                args.config,
                settings=_nfs_settings_for(args.config),
                exe=exe,
            )

        ledger = run(config_path=args.config, exe=exe)
        print(render_summary(ledger))
        return ledger.exit_code()
    except PreflightError as e:
        logger.error("%s", e)
        print(f"ERROR: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
