from __future__ import annotations

import pytest

from machine_setup.errors import CommandError, MountError
from machine_setup.lib import mounts
from machine_setup.lib.command import CmdResult
from machine_setup.lib.env import ExecConfig
from machine_setup.lib.mounts import LiveMountTable, make_mount_point, mount_from_fstab, parse_proc_mounts


def test_parse_proc_mounts_unescapes_paths():
    parsed = parse_proc_mounts("nas:/My\\040Files /mnt/my\\040files nfs4 rw 0 0\nshort line\n")
    assert [(m.source, m.target, m.fstype) for m in parsed] == [("nas:/My Files", "/mnt/my files", "nfs4")]


def test_mounted_at_and_is_mount_point(proc_mounts):
    with proc_mounts.open("a") as f:
        f.write("10.0.0.5:/vol/backup /mnt/backup nfs4 rw 0 0\n")
    table = LiveMountTable(str(proc_mounts))

    assert table.mounted_at("10.0.0.5:/vol/backup/") == "/mnt/backup"
    assert table.mounted_at("10.0.0.5:/vol/media") is None
    assert table.is_mount_point("/mnt/backup/")
    assert not table.is_mount_point("/mnt/media")


def test_missing_live_table_means_nothing_mounted(tmp_path):
    assert LiveMountTable(str(tmp_path / "absent")).mounts() == []


def test_make_mount_point(tmp_path):
    make_mount_point(str(tmp_path / "a" / "b"))
    assert (tmp_path / "a" / "b").is_dir()

    make_mount_point(str(tmp_path / "dry"), exe=ExecConfig(dry_run=True))
    assert not (tmp_path / "dry").exists()

    (tmp_path / "file").write_text("x")
    with pytest.raises(MountError):
        make_mount_point(str(tmp_path / "file" / "sub"))


def test_mount_failure_becomes_mount_error(monkeypatch):
    def fake_run(argv, **kw):
        raise CommandError(argv, 32, "mount.nfs: Connection timed out")

    monkeypatch.setattr(mounts, "run_cmd", fake_run)
    with pytest.raises(MountError, match="Connection timed out"):
        mount_from_fstab("/mnt/backup")


def test_mount_calls_mount_with_mount_point(monkeypatch):
    seen = []

    def fake_run(argv, **kw):
        seen.append(argv)
        return CmdResult(list(argv), 0, "", "")

    monkeypatch.setattr(mounts, "run_cmd", fake_run)
    mount_from_fstab("/mnt/backup")
    assert seen == [["mount", "/mnt/backup"]]
