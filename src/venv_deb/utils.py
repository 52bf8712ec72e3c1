"""Utilities shared by the packager and the publisher."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import TypeAlias

logger = logging.getLogger("venv_deb")

StrPath: TypeAlias = str | PathLike[str]


class UsageError(ValueError):
    """Invalid command line arguments."""


class MatchError(ValueError):
    """A glob pattern did not resolve to a single file."""


class NoMatchError(MatchError):
    """Nothing matched."""


class AmbiguousMatchError(MatchError):
    """More than one file matched."""


def find_single(directory: StrPath, pattern: str) -> Path:
    """Return the only file in `directory` matching `pattern`.

    Raises:
        NoMatchError: If no file matches.
        AmbiguousMatchError: If several files match.
    """
    matches = sorted(p for p in Path(directory).glob(pattern) if p.is_file())
    if not matches:
        raise NoMatchError(f"No file matching {pattern} in {directory}")
    if len(matches) > 1:
        names = ", ".join(p.name for p in matches)
        raise AmbiguousMatchError(
            f"Multiple files matching {pattern} in {directory}: {names}"
        )
    return matches[0]


__all__ = [
    "AmbiguousMatchError",
    "MatchError",
    "NoMatchError",
    "StrPath",
    "UsageError",
    "find_single",
]
