"""Declared metadata and source distributions of the packaged project."""

from __future__ import annotations

import logging
import subprocess
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from venv_deb.utils import StrPath

logger = logging.getLogger("venv_deb")


class ProjectError(ValueError):
    """Project metadata could not be determined."""


@dataclass(frozen=True)
class ProjectMetadata:
    """The fields of the project that end up in the package."""

    name: str
    version: str
    description: str
    long_description: str
    maintainer: str


def query_setup(python: StrPath, field: str, cwd: StrPath) -> str:
    """Ask `setup.py` for one of its fields, e.g. `name` or `long-description`."""
    output = subprocess.check_output(  # noqa: S603
        [str(python), "setup.py", f"--{field}"], cwd=cwd, text=True
    )
    return output.strip()


def _format_person(people: list[dict[str, str]]) -> str:
    for person in people:
        name, email = person.get("name"), person.get("email")
        if name and email:
            return f"{name} <{email}>"
        if name or email:
            return name or email or ""
    return ""


def _read_readme(source_dir: Path, readme: str | dict[str, Any] | None) -> str:
    if readme is None:
        return ""
    if isinstance(readme, str):
        return (source_dir / readme).read_text("utf-8").strip()
    if "text" in readme:
        return str(readme["text"]).strip()
    if "file" in readme:
        return (source_dir / readme["file"]).read_text("utf-8").strip()
    return ""


def _from_pyproject(pyproject: Path) -> ProjectMetadata:
    with pyproject.open("rb") as f:
        data = tomllib.load(f)

    project = data.get("project")
    if not project or "name" not in project:
        raise ProjectError(f"No [project] name in {pyproject}")

    if "version" in project.get("dynamic", []):
        raise ProjectError(f"Dynamic versions are not supported: {pyproject}")

    return ProjectMetadata(
        name=project["name"],
        version=project.get("version", ""),
        description=project.get("description", ""),
        long_description=_read_readme(pyproject.parent, project.get("readme")),
        maintainer=_format_person(project.get("maintainers", []))
        or _format_person(project.get("authors", [])),
    )


def read_metadata(python: StrPath, source_dir: StrPath) -> ProjectMetadata:
    """Read the metadata from `setup.py` or `pyproject.toml` in `source_dir`.

    `setup.py` is run by `python`, the interpreter of the packaged virtualenv.

    Raises:
        ProjectError: If neither file exists.
    """
    source_dir = Path(source_dir)
    if (source_dir / "setup.py").is_file():
        logger.debug("Querying setup.py in %s", source_dir)
        fields = {
            field.replace("-", "_"): query_setup(python, field, source_dir)
            for field in (
                "name",
                "version",
                "description",
                "long-description",
                "maintainer",
            )
        }
        return ProjectMetadata(**fields)

    pyproject = source_dir / "pyproject.toml"
    if pyproject.is_file():
        logger.debug("Reading %s", pyproject)
        return _from_pyproject(pyproject)

    raise ProjectError(f"Neither setup.py nor pyproject.toml in {source_dir}")


def build_sdist(python: StrPath, source_dir: StrPath, dist_dir: StrPath) -> None:
    """Create a source distribution of the project in `dist_dir`."""
    source_dir = Path(source_dir)
    dist_dir = Path(dist_dir).resolve()
    if (source_dir / "setup.py").is_file():
        args = [
            str(python),
            "setup.py",
            "sdist",
            "--formats=zip",
            f"--dist-dir={dist_dir}",
        ]
    else:
        args = [str(python), "-m", "build", "--sdist", "--outdir", str(dist_dir)]

    logger.info("Creating source distribution in %s", dist_dir)
    subprocess.check_call(args, cwd=source_dir)  # noqa: S603


__all__ = [
    "ProjectError",
    "ProjectMetadata",
    "build_sdist",
    "query_setup",
    "read_metadata",
]
