from __future__ import annotations

import pytest

from machine_setup import preflight
from machine_setup.errors import ConfigError, PreflightError
from machine_setup.lib.env import ExecConfig


@pytest.fixture
def config(tmp_path):
    p = tmp_path / "setup.yaml"
    p.write_text("packages: {}\n")
    return str(p)


def _host(monkeypatch, *, root=True, apt=True):
    monkeypatch.setattr(preflight, "is_root", lambda: root)
    monkeypatch.setattr(preflight, "have_binary", lambda name: apt)


def test_passes_on_prepared_host(monkeypatch, config):
    _host(monkeypatch)
    preflight.run_preflight(config)


def test_requires_root_unless_dry_run(monkeypatch, config):
    _host(monkeypatch, root=False)
    with pytest.raises(PreflightError, match="root"):
        preflight.run_preflight(config)
    preflight.run_preflight(config, exe=ExecConfig(dry_run=True))


def test_requires_apt(monkeypatch, config):
    _host(monkeypatch, apt=False)
    with pytest.raises(PreflightError, match="apt-get"):
        preflight.run_preflight(config)


def test_requires_config(monkeypatch, tmp_path):
    _host(monkeypatch)
    with pytest.raises(ConfigError):
        preflight.run_preflight(str(tmp_path / "missing.yaml"))
