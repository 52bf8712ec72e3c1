# %%
"""Tests for publishing a package to the remote repository."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

import pytest

from venv_deb.apt.publisher import (
    RepoConf,
    pool_dir,
    prm_command,
    publish_deb,
    resolve_package,
    validate_args,
)
from venv_deb.utils import UsageError

if TYPE_CHECKING:
    from pathlib import Path

CONF = RepoConf(
    account="debian", host="deploy.example.com", base_path="", arches=("i386", "amd64")
)


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Record ssh and rsync invocations instead of running them."""
    recorded: list[list[str]] = []

    def fake_check_call(args: list[str]) -> int:
        recorded.append(args)
        return 0

    monkeypatch.setattr(subprocess, "check_call", fake_check_call)
    return recorded


@pytest.fixture
def package(tmp_path: Path) -> Path:
    """An (empty) package file."""
    deb = tmp_path / "myapp_20240307.090501-0123456_amd64.deb"
    deb.touch()
    return deb


def test_repo_conf_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings are read from the environment."""
    monkeypatch.setenv("REPO_ACCOUNT", "debian")
    monkeypatch.setenv("REPO_HOST", "deploy.example.com")
    monkeypatch.delenv("REPO_BASE_PATH", raising=False)
    monkeypatch.setenv("REPO_ARCHITECTURES", "amd64,arm64")

    conf = RepoConf()

    assert conf.destination == "debian@deploy.example.com"
    assert conf.repo_path == "/home/debian/repository"
    assert conf.arches == ("amd64", "arm64")


def test_repo_conf_default_arches(monkeypatch: pytest.MonkeyPatch) -> None:
    """Two architectures are published by default."""
    monkeypatch.delenv("REPO_ARCHITECTURES", raising=False)
    assert RepoConf().arches == ("i386", "amd64")


@pytest.mark.parametrize(
    ("release", "component", "message"),
    [
        (None, "main", "release"),
        ("", "main", "release"),
        ("precise", None, "component"),
        ("precise", "", "component"),
    ],
)
def test_validate_args(release: str | None, component: str | None, message: str) -> None:
    """Release and component are required."""
    with pytest.raises(UsageError, match=message):
        validate_args(release, component)


def test_prm_command() -> None:
    """prm runs inside the repository directory."""
    assert prm_command(CONF, "precise", "main") == (
        "cd /home/debian/repository && ./prm.rb -t deb -p pool -c main"
        " -r precise -a i386,amd64 --gpg"
    )


def test_prm_command_is_quoted() -> None:
    """Arguments cannot break out of the remote command."""
    command = prm_command(CONF, "precise", "main; rm -rf /")
    assert "-c 'main; rm -rf /'" in command


def test_pool_dir() -> None:
    """Packages go to pool/dists/<release>/<component>/binary-<arch>/."""
    assert pool_dir(CONF, "precise", "main", "amd64") == (
        "/home/debian/repository/pool/dists/precise/main/binary-amd64/"
    )


def test_resolve_package(tmp_path: Path, package: Path) -> None:
    """Wildcards must match exactly one file."""
    assert resolve_package(package) == package
    assert resolve_package(tmp_path / "myapp*.deb") == package

    with pytest.raises(UsageError, match="not found"):
        resolve_package(tmp_path / "other*.deb")

    (tmp_path / "myapp_20240308.000000-abcdef0_amd64.deb").touch()
    with pytest.raises(UsageError, match="Multiple"):
        resolve_package(tmp_path / "myapp*.deb")


def test_publish_deb(package: Path, calls: list[list[str]]) -> None:
    """prm runs before and after the upload to every architecture."""
    assert publish_deb(package, "precise", "main", CONF) == package

    prm = prm_command(CONF, "precise", "main")
    assert calls == [
        ["ssh", "debian@deploy.example.com", prm],
        [
            "rsync",
            "-av",
            str(package),
            "debian@deploy.example.com:"
            "/home/debian/repository/pool/dists/precise/main/binary-i386/",
        ],
        [
            "rsync",
            "-av",
            str(package),
            "debian@deploy.example.com:"
            "/home/debian/repository/pool/dists/precise/main/binary-amd64/",
        ],
        ["ssh", "debian@deploy.example.com", prm],
    ]


def test_publish_deb_missing_component(package: Path, calls: list[list[str]]) -> None:
    """Nothing is contacted when an argument is missing."""
    with pytest.raises(UsageError):
        publish_deb(package, "precise", "", CONF)
    assert calls == []


def test_publish_deb_missing_host(package: Path, calls: list[list[str]]) -> None:
    """An unconfigured repository is a usage error."""
    with pytest.raises(UsageError, match="host"):
        publish_deb(package, "precise", "main", RepoConf(account="debian", host=""))
    assert calls == []


def test_publish_deb_stops_at_failed_upload(
    package: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failing transfer aborts before the repository is rebuilt."""
    recorded: list[str] = []

    def fake_check_call(args: list[str]) -> int:
        recorded.append(args[0])
        if args[0] == "rsync":
            raise subprocess.CalledProcessError(23, args)
        return 0

    monkeypatch.setattr(subprocess, "check_call", fake_check_call)

    with pytest.raises(subprocess.CalledProcessError):
        publish_deb(package, "precise", "main", CONF)
    assert recorded == ["ssh", "rsync"]
