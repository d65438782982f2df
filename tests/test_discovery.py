from __future__ import annotations

from pathlib import Path

import yaml
from conftest import ScriptedPrompter

from machine_setup.desired_state import NfsSettings
from machine_setup.discovery import NFSExportDiscoverer, discover_interactive
from machine_setup.errors import UnreachableServer
from machine_setup.ledger import OutcomeLedger
from machine_setup.lib.mounts import LiveMountTable


def exports(*paths):
    def list_exports(server):
        return list(paths)

    return list_exports


def unreachable(server):
    raise UnreachableServer(server, "clnt_create: RPC: Program not registered")


def test_suggest_uses_basename_under_mount_base():
    d = NFSExportDiscoverer(exports(), mount_base="/mnt", nfs_version="4")
    assert d.suggest("/vol/backup", 0) == ("/mnt/backup", "rw,nfsvers=4")
    assert d.suggest("/vol/media/", 1) == ("/mnt/media", "rw,nfsvers=4")


def test_mount_name_applies_to_first_export_only():
    d = NFSExportDiscoverer(exports(), mount_name="nas")
    assert d.suggest("/vol/backup", 0)[0] == "/mnt/nas"
    assert d.suggest("/vol/media", 1)[0] == "/mnt/media"


def test_per_export_names_override():
    d = NFSExportDiscoverer(
        exports(),
        mount_name="nas",
        mount_names={"/vol/backup": "bk", "/vol/media": "/srv/media"},
    )
    assert d.suggest("/vol/backup", 0)[0] == "/mnt/bk"
    assert d.suggest("/vol/media", 1)[0] == "/srv/media"


def test_unreachable_server_is_a_warning_not_a_failure(live):
    ledger = OutcomeLedger()
    specs = NFSExportDiscoverer(unreachable).iter_automatic("10.0.0.9", live, ledger)

    assert specs == []
    assert not ledger.failed
    assert len(ledger.warnings) == 1
    assert "10.0.0.9" in ledger.warnings[0]
    assert ledger.exit_code() == 0


def test_automatic_keeps_actual_path_of_mounted_exports(proc_mounts):
    with proc_mounts.open("a") as f:
        f.write("10.0.0.5:/vol/backup /srv/backup nfs4 rw 0 0\n")
    d = NFSExportDiscoverer(exports("/vol/backup", "/vol/media"), nfs_version="3")

    specs = d.iter_automatic("10.0.0.5", LiveMountTable(str(proc_mounts)), OutcomeLedger())

    assert [(s.remote_path, s.local_mount_point, s.options) for s in specs] == [
        ("/vol/backup", "/srv/backup", "rw,nfsvers=3"),
        ("/vol/media", "/mnt/media", "rw,nfsvers=3"),
    ]


def test_no_exports_is_empty_success(live):
    ledger = OutcomeLedger()
    assert NFSExportDiscoverer(exports()).iter_automatic("10.0.0.5", live, ledger) == []
    assert not ledger.failed


def test_interactive_accept_skip_and_defaults():
    d = NFSExportDiscoverer(exports(), mount_base="/mnt")
    prompter = ScriptedPrompter(["a", "", "", "s", "a", "films", "ro,nfsvers=3"])

    specs = list(d.iter_interactive("10.0.0.5", ["/vol/backup", "/vol/tmp", "/vol/media"], prompter))

    assert [s.to_record() for s in specs] == [
        "10.0.0.5:/vol/backup:/mnt/backup:rw,nfsvers=4",
        "10.0.0.5:/vol/media:/mnt/films:ro,nfsvers=3",
    ]


def test_interactive_default_answer_skips():
    d = NFSExportDiscoverer(exports())
    assert list(d.iter_interactive("10.0.0.5", ["/vol/a", "/vol/b"], ScriptedPrompter([]))) == []


def _config(tmp_path: Path) -> Path:
    p = tmp_path / "setup.yaml"
    p.write_text("packages:\n  nfs: true\n# keep me\n")
    return p


def test_discover_interactive_merges_after_confirmation(tmp_path):
    cfg = _config(tmp_path)
    prompter = ScriptedPrompter(["a", "", "", "y"])

    rc = discover_interactive("10.0.0.5", str(cfg), prompter=prompter, exports_of=exports("/vol/backup"))

    assert rc == 0
    text = cfg.read_text()
    assert "# keep me" in text
    assert yaml.safe_load(text)["nfs"]["mounts"] == ["10.0.0.5:/vol/backup:/mnt/backup:rw,nfsvers=4"]


def test_discover_interactive_declined_writes_nothing(tmp_path):
    cfg = _config(tmp_path)
    before = cfg.read_text()

    prompter = ScriptedPrompter(["a", "", ""])
    rc = discover_interactive("10.0.0.5", str(cfg), prompter=prompter, exports_of=exports("/vol/a"))

    assert rc == 0
    assert cfg.read_text() == before


def test_discover_interactive_unreachable_exits_1(tmp_path):
    cfg = _config(tmp_path)
    assert discover_interactive("10.0.0.9", str(cfg), prompter=ScriptedPrompter([]), exports_of=unreachable) == 1


def test_discover_interactive_uses_configured_settings(tmp_path):
    cfg = _config(tmp_path)
    settings = NfsSettings(version="3", mount_base="/data", mount_name="nas")

    discover_interactive(
        "10.0.0.5",
        str(cfg),
        settings=settings,
        prompter=ScriptedPrompter(["a", "", "", "y"]),
        exports_of=exports("/vol/backup"),
    )

    assert yaml.safe_load(cfg.read_text())["nfs"]["mounts"] == ["10.0.0.5:/vol/backup:/data/nas:rw,nfsvers=3"]
