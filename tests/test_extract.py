"""Tests for unpacking source distributions."""

from __future__ import annotations

import io
import tarfile
import zipfile
from typing import TYPE_CHECKING

import pytest

from venv_deb.extract import DecompressionError, extract

if TYPE_CHECKING:
    from pathlib import Path


def test_extract_zip_skips_unsafe_members(tmp_path: Path) -> None:
    """Members escaping the target are not extracted."""
    src = tmp_path / "myapp-1.0.zip"
    with zipfile.ZipFile(src, "w") as archive:
        archive.writestr("myapp-1.0/setup.py", "")
        archive.writestr("../escape.txt", "")
    target = tmp_path / "out"
    target.mkdir()

    extracted = extract(src, target)

    assert extracted == [target / "myapp-1.0/setup.py"]
    assert (target / "myapp-1.0" / "setup.py").is_file()
    assert not (tmp_path / "escape.txt").exists()


@pytest.mark.parametrize("suffix", [".tar.gz", ".tar.bz2", ".tar"])
def test_extract_tarball(tmp_path: Path, suffix: str) -> None:
    """Tarballs are supported as well."""
    src = tmp_path / f"myapp-1.0{suffix}"
    mode = {".tar.gz": "w:gz", ".tar.bz2": "w:bz2", ".tar": "w"}[suffix]
    content = b"def test_app(): pass\n"
    with tarfile.open(src, mode) as tar:
        info = tarfile.TarInfo("myapp-1.0/tests/test_app.py")
        info.size = len(content)
        tar.addfile(info, io.BytesIO(content))
    target = tmp_path / "out"
    target.mkdir()

    extract(src, target)

    assert (target / "myapp-1.0" / "tests" / "test_app.py").read_bytes() == content


def test_extract_unknown_format(tmp_path: Path) -> None:
    """Anything else is rejected."""
    src = tmp_path / "myapp-1.0.whl.txt"
    src.write_text("not an archive")
    with pytest.raises(DecompressionError):
        extract(src, tmp_path)
