from __future__ import annotations

from typing import List

import pytest

from machine_setup import catalog as catalog_mod
from machine_setup.catalog import NFS_PACKAGE, build_catalog
from machine_setup.engine import ReconciliationEngine
from machine_setup.errors import CommandError, ProviderError
from machine_setup.ledger import OutcomeLedger
from machine_setup.lib import apt as apt_lib
from machine_setup.lib.command import CmdResult
from machine_setup.models import PackageSpec
from machine_setup.providers import AptProvider
from machine_setup.providers import apt as apt_provider_mod


class Recorder:
    def __init__(self, fail_on: str = "") -> None:
        self.calls: List[List[str]] = []
        self.fail_on = fail_on

    def __call__(self, argv, **kw) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        if self.fail_on and self.fail_on in argv:
            raise CommandError(argv, 100, "E: Unable to locate package")
        return CmdResult(argv, 0, "", "")


def test_apt_provider_installs_configured_packages(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(apt_lib, "run_cmd", rec)

    AptProvider(packages=["nfs-common"], query_package="nfs-common").install("nfs")
    AptProvider().upgrade("htop")

    assert rec.calls == [
        ["apt-get", "install", "-y", "-qq", "nfs-common"],
        ["apt-get", "install", "-y", "-qq", "--only-upgrade", "htop"],
    ]


def test_apt_provider_wraps_command_errors(monkeypatch):
    monkeypatch.setattr(apt_lib, "run_cmd", Recorder(fail_on="nosuchpkg"))
    with pytest.raises(ProviderError, match="Unable to locate"):
        AptProvider().install("nosuchpkg")


def test_apt_provider_versions(monkeypatch):
    def fake(argv, **kw):
        if argv[0] == "dpkg-query":
            return CmdResult(list(argv), 0, "install ok installed\t2.43", "")
        return CmdResult(list(argv), 0, "git:\n  Installed: 2.43\n  Candidate: 2.44\n", "")

    monkeypatch.setattr(apt_lib, "run_cmd", fake)
    p = AptProvider()
    assert p.installed_version("git") == "2.43"
    assert p.candidate_version("git") == "2.44"
    assert p.current_version("git") == "2.43"


def test_catalog_order_and_fallback():
    catalog = build_catalog()
    assert catalog.names() == ["git", "mc", "awscli", "duf", "docker", "tailscale", NFS_PACKAGE]
    assert isinstance(catalog.entry("htop").provider, AptProvider)
    assert catalog.entry(NFS_PACKAGE).provider.packages == ["nfs-common"]


def test_git_post_steps_configure_identity(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(catalog_mod, "run_cmd", rec)
    monkeypatch.setattr(apt_provider_mod.apt, "installed_version", lambda name, exe=None: "2.43")
    monkeypatch.setattr(apt_provider_mod.apt, "candidate_version", lambda name, exe=None: "2.43")

    engine = ReconciliationEngine(build_catalog(), binary_available=lambda name: True)
    ledger = engine.reconcile_all(
        [PackageSpec("git", True, {"user_name": "Ada", "user_email": ""})],
        OutcomeLedger(),
    )

    assert [r.item for r in ledger.current] == ["git"]
    assert rec.calls == [["git", "config", "--global", "user.name", "Ada"]]
