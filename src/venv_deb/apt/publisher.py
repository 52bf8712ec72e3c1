"""Publish a Debian package to the internal apt repository.

The repository lives on a remote host and is managed by `prm.rb`. The
package is copied with rsync into the pool of every architecture, and prm is
run before the upload to create the pool directories and after it to sign
the package and rebuild the repository metadata.
"""

from __future__ import annotations

import glob
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from venv_deb.utils import StrPath, UsageError

logger = logging.getLogger("venv_deb")


def _arches_from_env() -> tuple[str, ...]:
    return tuple(
        arch
        for arch in os.getenv("REPO_ARCHITECTURES", "i386,amd64").split(",")
        if arch
    )


@dataclass(frozen=True)
class RepoConf:
    """Location of the remote repository."""

    account: str = field(default_factory=lambda: os.getenv("REPO_ACCOUNT", ""))
    host: str = field(default_factory=lambda: os.getenv("REPO_HOST", ""))
    base_path: str = field(default_factory=lambda: os.getenv("REPO_BASE_PATH", ""))
    arches: tuple[str, ...] = field(default_factory=_arches_from_env)

    @property
    def destination(self) -> str:
        """The ssh destination, `account@host`."""
        return f"{self.account}@{self.host}"

    @property
    def repo_path(self) -> str:
        """The repository directory on the remote host."""
        return self.base_path or f"/home/{self.account}/repository"


def validate_args(release: str | None, component: str | None) -> None:
    """Check the release and component arguments.

    Raises:
        UsageError: If one of them is missing.
    """
    if not release:
        raise UsageError("Missing required release argument")
    if not component:
        raise UsageError("Missing required component argument")


def validate_conf(conf: RepoConf) -> None:
    """Check that the remote repository is configured.

    Raises:
        UsageError: If the account, host or architectures are missing.
    """
    if not conf.account or not conf.host:
        raise UsageError("Repository account and host must be provided.")
    if not conf.arches:
        raise UsageError("At least one architecture must be provided.")


def resolve_package(filename: StrPath) -> Path:
    """Expand a wildcard in `filename` to exactly one existing file.

    Raises:
        UsageError: If nothing or more than one file matches.
    """
    matches = sorted(glob.glob(str(filename)))  # noqa: PTH207
    if not matches:
        raise UsageError(f"Package file {filename} not found.")
    if len(matches) > 1:
        raise UsageError(f"Multiple package files match {filename}: {matches}")
    return Path(matches[0])


def prm_command(conf: RepoConf, release: str, component: str) -> str:
    """The shell command running prm in the repository directory."""
    prm = [
        "./prm.rb",
        "-t", "deb",
        "-p", "pool",
        "-c", component,
        "-r", release,
        "-a", ",".join(conf.arches),
        "--gpg",
    ]  # fmt: skip
    return f"cd {shlex.quote(conf.repo_path)} && {shlex.join(prm)}"


def pool_dir(conf: RepoConf, release: str, component: str, arch: str) -> str:
    """The remote directory receiving packages for `arch`."""
    return f"{conf.repo_path}/pool/dists/{release}/{component}/binary-{arch}/"


def run_prm(conf: RepoConf, release: str, component: str) -> None:
    """Run prm on the repository host."""
    args = ["ssh", conf.destination, prm_command(conf, release, component)]
    logger.debug(args)
    subprocess.check_call(args)  # noqa: S603


def upload(package: StrPath, conf: RepoConf, dest_dir: str) -> None:
    """Copy the package into `dest_dir` on the repository host."""
    logger.info("Uploading deb file to %s", dest_dir)
    args = ["rsync", "-av", str(package), f"{conf.destination}:{dest_dir}"]
    logger.debug(args)
    subprocess.check_call(args)  # noqa: S603


def publish_deb(
    filename: StrPath,
    release: str,
    component: str,
    conf: RepoConf | None = None,
) -> Path:
    """Publish the package under `release` and `component`.

    Args:
        filename: The package, may contain a wildcard.
        release: The release to publish to.
        component: The component of the package within the repository.
        conf: The remote repository. Defaults to the environment settings.

    Returns:
        The published package.

    Raises:
        UsageError: If an argument or the configuration is missing.
        subprocess.CalledProcessError: If ssh or rsync failed.
    """
    validate_args(release, component)
    conf = conf or RepoConf()
    validate_conf(conf)
    package = resolve_package(filename)

    # creates the pool directories
    run_prm(conf, release, component)

    for arch in conf.arches:
        upload(package, conf, pool_dir(conf, release, component, arch))

    # signs the package and rebuilds the metadata
    run_prm(conf, release, component)

    logger.info("Published %s to %s/%s", package.name, release, component)
    return package


__all__ = [
    "RepoConf",
    "pool_dir",
    "prm_command",
    "publish_deb",
    "resolve_package",
    "run_prm",
    "upload",
    "validate_args",
    "validate_conf",
]
