"""Unpack source distributions.

Implements:
- `SDIST_PATTERNS`: Source distribution file patterns, preferred first.
- `extract`: Extract a zip file or a tarball.
"""

from __future__ import annotations

import logging
import tarfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from venv_deb.utils import StrPath

logger = logging.getLogger("venv_deb")

SDIST_PATTERNS = ("*.zip", "*.tar.gz", "*.tgz", "*.tar.bz2", "*.tbz2", "*.tar")


class DecompressionError(Exception):
    """Decompression failed."""


def _get_compression_mode(src: Path) -> str:
    """Return the `tarfile` mode for a given tarball."""
    name = src.name
    if name.endswith(".tar"):
        return "r"
    if name.endswith((".tar.gz", ".tgz")):
        return "r:gz"
    if name.endswith((".tar.bz2", ".tbz2")):
        return "r:bz2"
    raise DecompressionError(f"Unknown compression mode for {src}")


def _is_safe_path(path: str) -> bool:
    """Check if the path is safe to extract."""
    pure = Path(path)
    return not (pure.is_absolute() or ".." in pure.parts)


def _extract_zip(src: Path, target: Path) -> list[Path]:
    with zipfile.ZipFile(src) as archive:
        members = [name for name in archive.namelist() if _is_safe_path(name)]
        for member in members:
            logger.debug("Extracting %s ...", member)
            archive.extract(member, target)
    return [target / member for member in members]


def _extract_tar(src: Path, target: Path) -> list[Path]:
    tar: tarfile.TarFile
    with tarfile.open(src, _get_compression_mode(src)) as tar:
        members = [m for m in tar.getmembers() if _is_safe_path(m.name)]
        for member in members:
            logger.debug("Extracting %s ...", member.name)
            tar.extract(member, target, filter="data")
    return [target / member.name for member in members]


def extract(src: StrPath, target: StrPath) -> list[Path]:
    """Extract the archive at `src` into `target`.

    Raises:
        DecompressionError: If `src` is neither a zip file nor a tarball.
    """
    logger.debug("Extracting %s to %s", src, target)
    src, target = Path(src), Path(target)

    if zipfile.is_zipfile(src):
        return _extract_zip(src, target)
    if tarfile.is_tarfile(src):
        return _extract_tar(src, target)
    raise DecompressionError(f"Not a zip file or tarball: {src}")


__all__ = ["SDIST_PATTERNS", "DecompressionError", "extract"]
