"""Git queries describing the checkout being packaged.

Implements:
- `remote_url`: Fetch URL of a remote.
- `commit_hash` / `short_hash`: The last commit.
- `oneline`: The last commit as `<hash> <subject>`.
- `current_branch`: The checked out branch.
- `GitInfo`: All of the above at once.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from typing_extensions import Self

if TYPE_CHECKING:
    from collections.abc import Sequence

    from venv_deb.utils import StrPath


def query(args: Sequence[str], cwd: StrPath | None = None) -> str:
    """Run a git command and return its output."""
    return subprocess.check_output(["git", *args], cwd=cwd, text=True)  # noqa: S603,S607


def remote_url(remote: str = "origin", cwd: StrPath | None = None) -> str:
    """Return the first URL listed for `remote`, or an empty string."""
    for line in query(["remote", "-v"], cwd).splitlines():
        name, _, rest = line.partition("\t")
        if name == remote and rest:
            return rest.split(" ", maxsplit=1)[0]
    return ""


def commit_hash(cwd: StrPath | None = None) -> str:
    """Full hash of the last commit."""
    return query(["log", "-1", "--pretty=format:%H"], cwd).strip()


def short_hash(cwd: StrPath | None = None) -> str:
    """Abbreviated hash of the last commit."""
    return query(["log", "-1", "--pretty=format:%h"], cwd).strip()


def oneline(cwd: StrPath | None = None) -> str:
    """Hash and subject of the last commit."""
    return query(["log", "-1", "--pretty=oneline"], cwd).strip()


def current_branch(cwd: StrPath | None = None) -> str:
    """Name of the checked out branch, or an empty string."""
    for line in query(["branch"], cwd).splitlines():
        if line.startswith("*"):
            return line[1:].strip()
    return ""


@dataclass(frozen=True)
class GitInfo:
    """Provenance of the packaged checkout."""

    url: str
    commit: str
    short: str
    oneline: str
    branch: str

    @classmethod
    def collect(cls, cwd: StrPath | None = None) -> Self:
        """Query git for everything the package metadata needs."""
        return cls(
            url=remote_url(cwd=cwd),
            commit=commit_hash(cwd),
            short=short_hash(cwd),
            oneline=oneline(cwd),
            branch=current_branch(cwd),
        )


__all__ = [
    "GitInfo",
    "commit_hash",
    "current_branch",
    "oneline",
    "query",
    "remote_url",
    "short_hash",
]
