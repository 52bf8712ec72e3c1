"""Ship Python virtualenvs as Debian packages."""

from __future__ import annotations

from venv_deb import git
from venv_deb.extract import DecompressionError, extract
from venv_deb.project import ProjectError, ProjectMetadata, read_metadata
from venv_deb.rewrite import VirtualenvRewrite
from venv_deb.utils import (
    AmbiguousMatchError,
    MatchError,
    NoMatchError,
    UsageError,
    find_single,
)

__all__ = [
    "AmbiguousMatchError",
    "DecompressionError",
    "MatchError",
    "NoMatchError",
    "ProjectError",
    "ProjectMetadata",
    "UsageError",
    "VirtualenvRewrite",
    "extract",
    "find_single",
    "git",
    "read_metadata",
]
