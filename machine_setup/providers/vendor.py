from __future__ import annotations

import logging
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from ..errors import CommandError, ProviderError
from ..lib import apt
from ..lib.command import run_cmd
from ..lib.env import DEFAULT_EXEC, ExecConfig
from ..lib.host import machine, read_os_release
from ..lib.net import download, fetch_json
from .apt import AptProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorRepo:
    """A third-party apt repository.

    key_url / source_line are templates over {distro}, {codename}, {arch} and
    {keyring}.
    """

    key_url: str
    keyring: str
    list_path: str
    source_line: str
    dearmor: bool = True

    def render(self, template: str, *, distro: str, codename: str, arch: str) -> str:
        return template.format(distro=distro, codename=codename, arch=arch, keyring=self.keyring)


class VendorAptRepoProvider(AptProvider):
    """apt install from a vendor repository, adding the repo on first install."""

    def __init__(
        self,
        repo: VendorRepo,
        *,
        packages: Optional[Sequence[str]] = None,
        query_package: Optional[str] = None,
        exe: ExecConfig = DEFAULT_EXEC,
    ) -> None:
        super().__init__(packages=packages, query_package=query_package, exe=exe)
        self.repo = repo

    def _add_repo(self) -> None:
        osr = read_os_release()
        distro = osr.get("ID") or "debian"
        codename = osr.get("VERSION_CODENAME") or "stable"
        arch = apt.dpkg_architecture(exe=self.exe) or "amd64"
        fmt = dict(distro=distro, codename=codename, arch=arch)

        apt.apt_install(["ca-certificates", "curl", "gnupg"], exe=self.exe)
        run_cmd(["install", "-m", "0755", "-d", str(Path(self.repo.keyring).parent)], exe=self.exe)

        key_url = self.repo.render(self.repo.key_url, **fmt)
        if self.repo.dearmor:
            with tempfile.TemporaryDirectory(prefix="machine-setup-key-") as tmp:
                armored = str(Path(tmp) / "key.asc")
                download(key_url, armored, exe=self.exe)
                run_cmd(["gpg", "--dearmor", "--yes", "-o", self.repo.keyring, armored], exe=self.exe)
        else:
            download(key_url, self.repo.keyring, exe=self.exe)
        run_cmd(["chmod", "a+r", self.repo.keyring], exe=self.exe)

        line = self.repo.render(self.repo.source_line, **fmt)
        if self.exe.dry_run:
            logger.info("Would write %s: %s", self.repo.list_path, line)
        else:
            p = Path(self.repo.list_path)
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(line + "\n", encoding="utf-8")
        apt.apt_update(exe=self.exe)
        logger.info("Added apt repository %s", self.repo.list_path)

    def install(self, name: str) -> None:
        try:
            self._add_repo()
        except (CommandError, OSError) as e:
            raise ProviderError(f"Failed to add repository: {e}") from e
        super().install(name)


class GitHubReleaseDebProvider(AptProvider):
    """apt first; falls back to the .deb attached to the latest GitHub release."""

    def __init__(
        self,
        github_repo: str,
        *,
        packages: Optional[Sequence[str]] = None,
        exe: ExecConfig = DEFAULT_EXEC,
    ) -> None:
        super().__init__(packages=packages, exe=exe)
        self.github_repo = github_repo

    def _release_deb_url(self) -> Optional[str]:
        arch = apt.dpkg_architecture(exe=self.exe)
        release = fetch_json(f"https://api.github.com/repos/{self.github_repo}/releases/latest", exe=self.exe)
        if not isinstance(release, dict):
            return None
        for asset in release.get("assets") or []:
            url = str((asset or {}).get("browser_download_url") or "")
            if url.endswith(f"linux_{arch}.deb"):
                return url
        return None

    def install(self, name: str) -> None:
        try:
            super().install(name)
            return
        except ProviderError as e:
            logger.info("apt install of %s failed (%s); trying GitHub release", name, e)

        url = self._release_deb_url()
        if not url:
            raise ProviderError(f"No .deb release asset found for {self.github_repo}")
        try:
            with tempfile.TemporaryDirectory(prefix="machine-setup-deb-") as tmp:
                deb = str(Path(tmp) / f"{name}.deb")
                download(url, deb, exe=self.exe)
                apt.dpkg_install(deb, exe=self.exe)
        except CommandError as e:
            raise ProviderError(str(e)) from e


_AWS_VERSION_RE = re.compile(r"aws-cli/(\S+)")
_SEMVER_TAG_RE = re.compile(r"refs/tags/(\d+)\.(\d+)\.(\d+)$")

AWSCLI_TAGS_URL = "https://api.github.com/repos/aws/aws-cli/git/refs/tags"
AWSCLI_ZIP_URL = "https://awscli.amazonaws.com/awscli-exe-linux-{machine}.zip"


def parse_aws_version(output: str) -> Optional[str]:
    m = _AWS_VERSION_RE.search(output or "")
    return m.group(1) if m else None


def latest_semver_tag(refs: object) -> Optional[str]:
    best: Optional[Tuple[int, int, int]] = None
    if not isinstance(refs, list):
        return None
    for ref in refs:
        if not isinstance(ref, dict):
            continue
        m = _SEMVER_TAG_RE.search(str(ref.get("ref") or ""))
        if not m:
            continue
        v = (int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if best is None or v > best:
            best = v
    return ".".join(str(p) for p in best) if best else None


class AwsCliProvider:
    """AWS CLI v2: not packaged for apt; installed from the vendor zip."""

    def __init__(self, *, exe: ExecConfig = DEFAULT_EXEC) -> None:
        self.exe = exe

    def installed_version(self, name: str) -> Optional[str]:
        r = run_cmd(["aws", "--version"], check=False, exe=self.exe, mutating=False)
        if not r.ok:
            return None
        return parse_aws_version(r.stdout + r.stderr)

    def candidate_version(self, name: str) -> Optional[str]:
        return latest_semver_tag(fetch_json(AWSCLI_TAGS_URL, exe=self.exe))

    def current_version(self, name: str) -> str:
        return self.installed_version(name) or "unknown"

    def _run_installer(self, *, update: bool) -> None:
        try:
            with tempfile.TemporaryDirectory(prefix="machine-setup-awscli-") as tmp:
                zip_path = str(Path(tmp) / "awscliv2.zip")
                download(AWSCLI_ZIP_URL.format(machine=machine()), zip_path, exe=self.exe)
                run_cmd(["unzip", "-q", zip_path, "-d", tmp], exe=self.exe)
                argv = [str(Path(tmp) / "aws" / "install")]
                if update:
                    argv.append("--update")
                run_cmd(argv, exe=self.exe)
        except CommandError as e:
            raise ProviderError(str(e)) from e

    def install(self, name: str) -> None:
        self._run_installer(update=False)

    def upgrade(self, name: str) -> None:
        self._run_installer(update=True)
