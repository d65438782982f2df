from __future__ import annotations

import textwrap

from machine_setup.lib.apt import parse_dpkg_status, parse_policy
from machine_setup.lib.host import read_os_release
from machine_setup.lib.nfs import parse_showmount
from machine_setup.providers.vendor import VendorRepo, latest_semver_tag, parse_aws_version

POLICY = textwrap.dedent(
    """\
    git:
      Installed: 1:2.39.2-1.1
      Candidate: 1:2.43.0-1
      Version table:
         1:2.43.0-1 500
    """
)


def test_dpkg_status():
    assert parse_dpkg_status("install ok installed\t1:2.39.2-1.1") == "1:2.39.2-1.1"
    assert parse_dpkg_status("deinstall ok config-files\t1:2.39.2-1.1") is None
    assert parse_dpkg_status("") is None


def test_apt_cache_policy():
    assert parse_policy(POLICY) == ("1:2.39.2-1.1", "1:2.43.0-1")
    assert parse_policy("foo:\n  Installed: (none)\n  Candidate: (none)\n") == (None, None)
    assert parse_policy("") == (None, None)


def test_showmount_output():
    out = "Export list for 10.0.0.5:\n/vol/backup 10.0.0.0/24\n/vol/media  *\n\n"
    assert parse_showmount(out) == ["/vol/backup", "/vol/media"]
    assert parse_showmount("Export list for 10.0.0.5:\n") == []


def test_aws_version():
    assert parse_aws_version("aws-cli/2.15.30 Python/3.11.8 Linux/6.5.0 exe/x86_64.ubuntu.22") == "2.15.30"
    assert parse_aws_version("command not found") is None


def test_latest_semver_tag_ignores_non_release_refs():
    refs = [
        {"ref": "refs/tags/2.9.1"},
        {"ref": "refs/tags/2.15.30"},
        {"ref": "refs/tags/2.15.4"},
        {"ref": "refs/tags/v3.0.0-beta"},
        "garbage",
    ]
    assert latest_semver_tag(refs) == "2.15.30"
    assert latest_semver_tag({"message": "API rate limit exceeded"}) is None


def test_vendor_repo_templates():
    repo = VendorRepo(
        key_url="https://download.example.com/linux/{distro}/gpg",
        keyring="/etc/apt/keyrings/example.gpg",
        list_path="/etc/apt/sources.list.d/example.list",
        source_line="deb [arch={arch} signed-by={keyring}] https://download.example.com/linux/{distro} {codename} stable",
    )
    line = repo.render(repo.source_line, distro="ubuntu", codename="noble", arch="amd64")
    assert line == (
        "deb [arch=amd64 signed-by=/etc/apt/keyrings/example.gpg] https://download.example.com/linux/ubuntu noble stable"
    )


def test_os_release(tmp_path):
    p = tmp_path / "os-release"
    p.write_text('PRETTY_NAME="Ubuntu 24.04 LTS"\nID=ubuntu\nVERSION_CODENAME=noble\n# comment\n')
    info = read_os_release(str(p))
    assert info["PRETTY_NAME"] == "Ubuntu 24.04 LTS"
    assert info["VERSION_CODENAME"] == "noble"
    assert read_os_release(str(tmp_path / "missing")) == {}
