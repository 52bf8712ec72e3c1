"""Fixtures for the venv_deb tests."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest


def make_virtualenv(root: Path) -> Path:
    """Create the parts of a virtualenv that hold its own location."""
    bin_dir = root / "bin"
    bin_dir.mkdir(parents=True)
    (bin_dir / "activate").write_text(f'VIRTUAL_ENV="{root}"\nexport VIRTUAL_ENV\n')
    (bin_dir / "myapp").write_text(
        f"#!{root}/bin/python\nimport sys\nfrom myapp import main\nsys.exit(main())\n"
    )
    (bin_dir / "pip").write_text(f"#!{root}/bin/python\nfrom pip import main\n")
    (bin_dir / "python").symlink_to(bin_dir / "pip")

    site_packages = root / "lib" / "python3.12" / "site-packages"
    site_packages.mkdir(parents=True)
    (site_packages / "easy-install.pth").write_text(f"{root}/src/myapp\n")
    (site_packages / "distutils-precedence.pth").write_text("import os\n")
    (site_packages / "myapp.py").write_text(f"ROOT = {str(root)!r}\n")
    return root


def make_sdist(dist_dir: Path, name: str = "myapp-1.0") -> Path:
    """Create a zipped source distribution."""
    dist_dir.mkdir(parents=True, exist_ok=True)
    sdist = dist_dir / f"{name}.zip"
    with zipfile.ZipFile(sdist, "w") as archive:
        archive.writestr(f"{name}/setup.py", "from setuptools import setup\n")
        archive.writestr(f"{name}/tests/test_app.py", "def test_app(): pass\n")
    return sdist


@pytest.fixture
def virtualenv(tmp_path: Path) -> Path:
    """A fake virtualenv in `<tmp>/.tox/py`."""
    return make_virtualenv(tmp_path.resolve() / ".tox" / "py")


def snapshot(root: Path) -> dict[Path, bytes]:
    """Content of all regular files below `root`."""
    return {
        path: path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file() and not path.is_symlink()
    }
