"""Build Debian packages from virtualenvs and publish them."""

from __future__ import annotations

from venv_deb.apt.packager import BuildConf, PackagingError, make_deb
from venv_deb.apt.publisher import RepoConf, publish_deb

__all__ = ["BuildConf", "PackagingError", "RepoConf", "make_deb", "publish_deb"]
