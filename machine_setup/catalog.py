"""Known packages: which provider installs each one and what follows the install.

Any name not listed here is treated as a plain apt package.
"""

from __future__ import annotations

import json
import logging
import pwd
import shlex

from .engine import Catalog, CatalogEntry, PostStep
from .lib.command import run_cmd
from .lib.env import DEFAULT_EXEC, ExecConfig
from .lib.host import hostname
from .models import PackageSpec
from .providers import AptProvider, AwsCliProvider, GitHubReleaseDebProvider, VendorAptRepoProvider, VendorRepo

logger = logging.getLogger(__name__)

NFS_PACKAGE = "nfs"

DOCKER_REPO = VendorRepo(
    key_url="https://download.docker.com/linux/{distro}/gpg",
    keyring="/etc/apt/keyrings/docker.gpg",
    list_path="/etc/apt/sources.list.d/docker.list",
    source_line="deb [arch={arch} signed-by={keyring}] https://download.docker.com/linux/{distro} {codename} stable",
)

TAILSCALE_REPO = VendorRepo(
    key_url="https://pkgs.tailscale.com/stable/{distro}/{codename}.noarmor.gpg",
    keyring="/usr/share/keyrings/tailscale-archive-keyring.gpg",
    list_path="/etc/apt/sources.list.d/tailscale.list",
    source_line="deb [signed-by={keyring}] https://pkgs.tailscale.com/stable/{distro} {codename} main",
    dearmor=False,
)


def _has(param: str):
    def check(spec: PackageSpec) -> bool:
        return bool(spec.param(param))

    return check


def _git_config(key: str, param: str):
    def action(spec: PackageSpec, exe: ExecConfig) -> None:
        run_cmd(["git", "config", "--global", key, str(spec.param(param))], exe=exe)

    return action


def _aws_region(spec: PackageSpec, exe: ExecConfig) -> None:
    run_cmd(["aws", "configure", "set", "default.region", str(spec.param("default_region"))], exe=exe)


def _user_exists(spec: PackageSpec) -> bool:
    user = spec.param("user")
    if not user:
        return False
    try:
        pwd.getpwnam(str(user))
    except KeyError:
        logger.warning("docker.user %s does not exist; not adding to docker group", user)
        return False
    return True


def _docker_group(spec: PackageSpec, exe: ExecConfig) -> None:
    run_cmd(["usermod", "-aG", "docker", str(spec.param("user"))], exe=exe)


def _enable_service(unit: str):
    def action(spec: PackageSpec, exe: ExecConfig) -> None:
        run_cmd(["systemctl", "enable", "--now", unit], exe=exe)

    return action


def tailscale_backend_state(exe: ExecConfig = DEFAULT_EXEC) -> str:
    r = run_cmd(["tailscale", "status", "--json"], check=False, exe=exe, mutating=False)
    try:
        data = json.loads(r.stdout or "{}")
    except ValueError:
        return ""
    return str(data.get("BackendState") or "") if isinstance(data, dict) else ""


def _tailscale_up(spec: PackageSpec, exe: ExecConfig) -> None:
    if tailscale_backend_state(exe) == "Running":
        logger.info("Already connected to Tailscale; skipping 'tailscale up'")
        return
    argv = [
        "tailscale",
        "up",
        f"--authkey={spec.param('auth_key')}",
        f"--hostname={spec.param('hostname') or hostname()}",
    ]
    argv += shlex.split(str(spec.param("extra_args") or ""))
    run_cmd(argv, exe=exe)


def build_catalog(exe: ExecConfig = DEFAULT_EXEC) -> Catalog:
    entries = {
        "git": CatalogEntry(
            provider=AptProvider(exe=exe),
            post_steps=(
                PostStep(
                    label="git config",
                    description="Configuring git user name",
                    action=_git_config("user.name", "user_name"),
                    failure="Failed to set user.name",
                    requires_binary="git",
                    when=_has("user_name"),
                ),
                PostStep(
                    label="git config",
                    description="Configuring git user email",
                    action=_git_config("user.email", "user_email"),
                    failure="Failed to set user.email",
                    requires_binary="git",
                    when=_has("user_email"),
                ),
            ),
        ),
        "mc": CatalogEntry(provider=AptProvider(exe=exe)),
        "awscli": CatalogEntry(
            provider=AwsCliProvider(exe=exe),
            post_steps=(
                PostStep(
                    label="aws config",
                    description="Configuring AWS default region",
                    action=_aws_region,
                    failure="Failed to set region",
                    requires_binary="aws",
                    when=_has("default_region"),
                ),
            ),
        ),
        "duf": CatalogEntry(provider=GitHubReleaseDebProvider("muesli/duf", exe=exe)),
        "docker": CatalogEntry(
            provider=VendorAptRepoProvider(
                DOCKER_REPO,
                packages=[
                    "docker-ce",
                    "docker-ce-cli",
                    "containerd.io",
                    "docker-buildx-plugin",
                    "docker-compose-plugin",
                ],
                query_package="docker-ce",
                exe=exe,
            ),
            post_steps=(
                PostStep(
                    label="docker group",
                    description="Adding user to docker group",
                    action=_docker_group,
                    failure="Failed to add user to docker group",
                    requires_binary="docker",
                    when=_user_exists,
                ),
                PostStep(
                    label="docker",
                    description="Enabling docker service",
                    action=_enable_service("docker"),
                    failure="Failed to enable service",
                    requires_binary="docker",
                ),
            ),
        ),
        "tailscale": CatalogEntry(
            provider=VendorAptRepoProvider(TAILSCALE_REPO, exe=exe),
            post_steps=(
                PostStep(
                    label="tailscale",
                    description="Enabling tailscale service",
                    action=_enable_service("tailscaled"),
                    failure="Failed to enable service",
                    requires_binary="tailscale",
                ),
                PostStep(
                    label="tailscale",
                    description="Connecting to Tailscale network",
                    action=_tailscale_up,
                    failure="Failed to connect (check auth key)",
                    requires_binary="tailscale",
                    when=_has("auth_key"),
                ),
            ),
        ),
        NFS_PACKAGE: CatalogEntry(provider=AptProvider(packages=["nfs-common"], query_package="nfs-common", exe=exe)),
    }

    def fallback(name: str) -> CatalogEntry:
        return CatalogEntry(provider=AptProvider(exe=exe))

    return Catalog(entries, fallback)
