"""Package a virtualenv as a Debian package with fpm.

The package installs to `/opt/<name>`. Console scripts and `.pth` files of
the virtualenv are pointed at that prefix while fpm runs and restored
afterwards, so the virtualenv can be tested and packaged again without
rebuilding it.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Template

from venv_deb.extract import SDIST_PATTERNS, extract
from venv_deb.git import GitInfo
from venv_deb.project import ProjectMetadata, build_sdist, read_metadata
from venv_deb.rewrite import VirtualenvRewrite
from venv_deb.utils import (
    MatchError,
    NoMatchError,
    StrPath,
    UsageError,
    find_single,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("venv_deb")

METADATA_FILE = "metadata.txt"
PAYLOAD = ("bin", "lib", "test", METADATA_FILE)

METADATA_TEMPLATE = """\
Name: {{ name }}
Version: {{ version }} [ {{ project_version }} ]
Packaged on: {{ packaged_on }}
Repository: {{ repository }}
Description: {{ description }}
"""


class PackagingError(RuntimeError):
    """Packaging the virtualenv failed."""


@dataclass(frozen=True)
class BuildConf:
    """Configuration for packaging a virtualenv."""

    pkg_root: StrPath
    name: str | None = None
    extra_args: list[str] = field(default_factory=list)
    source_dir: StrPath = Path()
    output: StrPath = Path()
    scripts_dir: StrPath = field(
        default_factory=lambda: os.getenv(
            "VENVDEB_SCRIPTS_DIR", "tools/packaging/scripts"
        )
    )
    vendor: str = field(
        default_factory=lambda: os.getenv("VENVDEB_VENDOR", "VanillaStack")
    )
    verbose: bool = False


def validate_pkg_root(pkg_root: StrPath | None) -> Path:
    """Return the absolute path of the virtualenv.

    Raises:
        UsageError: If no path was given or it is not a directory.
    """
    if not pkg_root:
        raise UsageError("No package root specified.")
    path = Path(pkg_root)
    if not path.is_dir():
        raise UsageError(f'Package root "{pkg_root}" not found.')
    # symlinks kept, the virtualenv records the path it was created under
    return Path(os.path.abspath(path))  # noqa: PTH100


def install_prefix(name: str) -> str:
    """Where the package is installed on the target host."""
    return f"/opt/{name}"


def make_version(now: datetime) -> str:
    """Version from the build time, YYYYMMDD.HHMMSS."""
    return now.strftime("%Y%m%d.%H%M%S")


def build_description(meta: ProjectMetadata, git_info: GitInfo) -> str:
    """Description of the package including its provenance."""
    return (
        f"{meta.description}\n"
        "\n"
        f"{meta.long_description}\n"
        "\n"
        f"Commit: {git_info.oneline}\n"
        f"Branch: {git_info.branch}\n"
    )


def write_metadata_file(
    pkg_root: StrPath,
    name: str,
    version: str,
    project_version: str,
    packaged_on: datetime,
    repository: str,
    description: str,
) -> Path:
    """Write the metadata file shipped inside the package."""
    content = Template(METADATA_TEMPLATE, keep_trailing_newline=True).render(
        name=name,
        version=version,
        project_version=project_version,
        packaged_on=packaged_on.astimezone().strftime("%a %b %d %H:%M:%S %Z %Y"),
        repository=repository,
        description=description,
    )
    metadata_file = Path(pkg_root) / METADATA_FILE
    metadata_file.write_text(content, "utf-8")
    return metadata_file


def remove_old_packages(name: str, output: StrPath) -> list[Path]:
    """Delete packages left over from earlier builds."""
    removed = sorted(p for p in Path(output).glob(f"{name}*.deb") if p.is_file())
    for deb in removed:
        logger.debug("Removing %s", deb)
        deb.unlink()
    return removed


def find_sdist(dist_dir: StrPath) -> Path | None:
    """Find the source distribution in `dist_dir`, zip files first.

    Raises:
        AmbiguousMatchError: If there are several archives of the same kind.
    """
    for pattern in SDIST_PATTERNS:
        try:
            return find_single(dist_dir, pattern)
        except NoMatchError:
            continue
    return None


def bundle_tests(python: StrPath, pkg_root: StrPath, source_dir: StrPath) -> Path:
    """Unpack the source distribution into `<pkg_root>/test`.

    The source distribution is taken from `<pkg_root>/../dist` and only
    created if there is none yet. An existing test directory is replaced.
    """
    pkg_root = Path(pkg_root)
    test_dir = pkg_root / "test"
    logger.info("Adding source to %s", test_dir)
    if test_dir.exists():
        shutil.rmtree(test_dir)
    test_dir.mkdir(parents=True)

    dist_dir = pkg_root.parent / "dist"
    dist_dir.mkdir(parents=True, exist_ok=True)

    sdist = find_sdist(dist_dir)
    if sdist is None:
        build_sdist(python, source_dir, dist_dir)
        sdist = find_sdist(dist_dir)
    if sdist is None:
        raise PackagingError(f"No source distribution was created in {dist_dir}")

    extract(sdist, test_dir)
    return test_dir


def after_install_script(scripts_dir: StrPath, name: str) -> Path | None:
    """The post install hook of the package, if there is one."""
    path = Path(scripts_dir) / name / "post_install"
    return path if path.is_file() else None


def fpm_args(
    *,
    name: str,
    version: str,
    iteration: str,
    vendor: str,
    year: int,
    maintainer: str,
    git_info: GitInfo,
    description: str,
    prefix: str,
    pkg_root: StrPath,
    after_install: StrPath | None = None,
    extra_args: Sequence[str] = (),
    verbose: bool = False,
) -> list[str]:
    """Build the fpm command line."""
    args = ["fpm"]
    if verbose:
        args.extend(["--verbose", "--debug"])
    args.extend(
        [
            "-s", "dir",
            "-t", "deb",
            "-n", name,
            "-v", version,
            "--iteration", iteration,
            "--license", f"Copyright {year} {vendor}",
            "--vendor", vendor,
            "--maintainer", maintainer,
            "--url", git_info.url,
            "--deb-field", f"Vcs-Git: {git_info.url}?{git_info.commit}",
            "--description", description,
            "--directories", prefix,
            "--prefix", prefix,
        ]
    )  # fmt: skip
    if after_install:
        args.extend(["--after-install", str(after_install)])
    args.extend(["-C", str(pkg_root)])
    args.extend(extra_args)
    args.extend(PAYLOAD)
    return args


def make_deb(conf: BuildConf) -> Path:
    """Package the virtualenv described by `conf`.

    Returns:
        The path of the new package.

    Raises:
        UsageError: If the virtualenv does not exist.
        PackagingError: If fpm did not produce exactly one package.
        subprocess.CalledProcessError: If an external command failed.
    """
    pkg_root = validate_pkg_root(conf.pkg_root)
    source_dir = Path(conf.source_dir).resolve()
    output = Path(conf.output).resolve()
    python = pkg_root / "bin" / "python"

    meta = read_metadata(python, source_dir)
    name = conf.name or meta.name
    prefix = install_prefix(name)

    git_info = GitInfo.collect(source_dir)
    now = datetime.now()
    version = make_version(now)
    description = build_description(meta, git_info)

    write_metadata_file(
        pkg_root, name, version, meta.version, now, git_info.url, description
    )

    remove_old_packages(name, output)

    bundle_tests(python, pkg_root, source_dir)

    after_install = after_install_script(source_dir / conf.scripts_dir, name)
    if after_install:
        logger.info("Using post install script %s", after_install)

    args = fpm_args(
        name=name,
        version=version,
        iteration=git_info.short,
        vendor=conf.vendor,
        year=now.year,
        maintainer=meta.maintainer,
        git_info=git_info,
        description=description,
        prefix=prefix,
        pkg_root=pkg_root,
        after_install=after_install,
        extra_args=conf.extra_args,
        verbose=conf.verbose,
    )

    logger.info(
        "Packaging %s version %s-%s from %s to %s",
        name,
        version,
        git_info.short,
        pkg_root,
        prefix,
    )
    logger.debug(args)

    with VirtualenvRewrite(pkg_root, str(pkg_root), prefix):
        subprocess.check_call(args, cwd=output)  # noqa: S603

    try:
        return find_single(output, f"{name}*.deb")
    except MatchError as e:
        raise PackagingError(str(e)) from e


__all__ = [
    "METADATA_FILE",
    "PAYLOAD",
    "BuildConf",
    "PackagingError",
    "UsageError",
    "after_install_script",
    "build_description",
    "bundle_tests",
    "find_sdist",
    "fpm_args",
    "install_prefix",
    "make_deb",
    "make_version",
    "remove_old_packages",
    "validate_pkg_root",
    "write_metadata_file",
]
