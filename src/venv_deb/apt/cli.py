"""CLI interface for the venv_deb.apt package."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from subprocess import CalledProcessError
from typing import TYPE_CHECKING, Any

from venv_deb.apt.packager import BuildConf, PackagingError, make_deb
from venv_deb.apt.publisher import RepoConf, publish_deb
from venv_deb.extract import DecompressionError
from venv_deb.project import ProjectError
from venv_deb.utils import MatchError, UsageError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

logger = logging.getLogger("venv_deb")


def make_deb_parser() -> argparse.ArgumentParser:
    """Parser for `venv-make-deb`."""
    parser = argparse.ArgumentParser(
        description="Package a virtualenv as a Debian package installed to"
        " /opt/<name>. From tox, use {envdir} as pkg_root.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="More output from fpm"
    )
    parser.add_argument(
        "-o", "--output", type=Path, help="Directory receiving the package"
    )
    parser.add_argument(
        "--scripts-dir",
        type=Path,
        help="Directory with <name>/post_install hooks (settable by"
        " VENVDEB_SCRIPTS_DIR)",
    )
    parser.add_argument(
        "--vendor", type=str, help="Vendor of the package (settable by VENVDEB_VENDOR)"
    )
    parser.add_argument(
        "pkg_root", nargs="?", type=Path, help="The root directory to package"
    )
    parser.add_argument(
        "name",
        nargs="?",
        type=str,
        help="The name of the package to create. Defaults to the project name.",
    )
    parser.add_argument(
        "extra_args",
        nargs=argparse.REMAINDER,
        help="Additional arguments passed to fpm",
    )
    return parser


def publish_deb_parser() -> argparse.ArgumentParser:
    """Parser for `venv-publish-deb`."""
    parser = argparse.ArgumentParser(
        description="Publish a Debian package to the internal repository."
    )
    parser.add_argument("--account", type=str, help="Remote user (REPO_ACCOUNT)")
    parser.add_argument("--host", type=str, help="Repository host (REPO_HOST)")
    parser.add_argument(
        "--base-path", type=str, help="Repository directory (REPO_BASE_PATH)"
    )
    parser.add_argument(
        "-a",
        "--arches",
        type=str,
        help="Comma separated architectures to publish for (REPO_ARCHITECTURES)",
    )
    parser.add_argument("filename", nargs="?", type=str, help="The .deb to publish")
    parser.add_argument(
        "release", nargs="?", type=str, help="The release to publish to"
    )
    parser.add_argument(
        "component", nargs="?", type=str, help="The component within the repo"
    )
    return parser


def _run(parser: argparse.ArgumentParser, func: Callable[[], object]) -> int:
    """Run `func` and translate failures into exit codes."""
    try:
        func()
    except (UsageError, MatchError) as e:
        print(f"ERROR: {e}", file=sys.stderr)  # noqa: T201
        parser.print_usage(sys.stderr)
        return 1
    except CalledProcessError as e:
        logger.error("Command failed with exit status %d: %s", e.returncode, e.cmd)  # noqa: TRY400
        return e.returncode
    except (PackagingError, ProjectError, DecompressionError) as e:
        logger.error("%s", e)  # noqa: TRY400
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")  # noqa: TRY400
        return 128 + signal.SIGINT
    return 0


def make_deb_cli(argv: Sequence[str] | None = None) -> int:
    """Build a Debian package from CLI arguments."""
    parser = make_deb_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logger.setLevel(logging.DEBUG)
    options = {
        k: v for k, v in vars(args).items() if k != "pkg_root" and v is not None
    }
    conf = BuildConf(pkg_root=args.pkg_root or "", **options)

    def _make() -> None:
        deb = make_deb(conf)
        logger.info("Created %s", deb)

    return _run(parser, _make)


def publish_deb_cli(argv: Sequence[str] | None = None) -> int:
    """Publish a Debian package from CLI arguments."""
    parser = publish_deb_parser()
    args = parser.parse_args(argv)
    overrides: dict[str, Any] = {
        k: v
        for k, v in vars(args).items()
        if k in {"account", "host", "base_path"} and v is not None
    }
    if args.arches:
        overrides["arches"] = tuple(a for a in args.arches.split(",") if a)
    conf = RepoConf(**overrides)

    return _run(
        parser,
        lambda: publish_deb(args.filename or "", args.release, args.component, conf),
    )


__all__ = [
    "make_deb_cli",
    "make_deb_parser",
    "publish_deb_cli",
    "publish_deb_parser",
]
