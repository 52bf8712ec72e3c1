"""Move a virtualenv to its install prefix and back again.

A virtualenv hardcodes its own location in the shebangs of its console
scripts and in its `.pth` files. Before packaging these must point to the
install prefix, afterwards they must point to the build location again so
the virtualenv keeps working for tests and repackaging.
"""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

if TYPE_CHECKING:
    from types import FrameType

    from venv_deb.utils import StrPath

logger = logging.getLogger("venv_deb")


def rewrite_targets(pkg_root: StrPath) -> list[Path]:
    """Console scripts and path configuration files of the virtualenv."""
    pkg_root = Path(pkg_root)
    scripts = sorted((pkg_root / "bin").glob("*"))
    pth_files = sorted(pkg_root.glob("lib/python*/site-packages/*.pth"))
    return [
        path
        for path in (*scripts, *pth_files)
        if path.is_file() and not path.is_symlink()
    ]


def replace_in_file(
    path: StrPath, old: str, new: str, originals: dict[Path, bytes] | None = None
) -> bytes | None:
    """Replace `old` by `new` in `path`.

    The original content is stored in `originals` before the file is written.

    Returns:
        The original content if the file was changed, otherwise None.
    """
    path = Path(path)
    content = path.read_bytes()
    updated = content.replace(old.encode(), new.encode())
    if updated == content:
        return None
    if originals is not None:
        originals.setdefault(path, content)
    path.write_bytes(updated)
    return content


def _terminate(signum: int, frame: FrameType | None) -> None:  # noqa: ARG001
    raise SystemExit(128 + signum)


class VirtualenvRewrite:
    """Rewrite the virtualenv paths for the duration of a `with` block.

    The original content is restored when the block is left, whether it
    returns, raises, or is interrupted by SIGINT or SIGTERM.

    Attributes:
        pkg_root: The virtualenv.
        old: The build location.
        new: The install prefix.
    """

    def __init__(self, pkg_root: StrPath, old: str, new: str) -> None:
        """Initialize the class.

        Args:
            pkg_root: The virtualenv to rewrite.
            old: The path to replace, usually `pkg_root` itself.
            new: The replacement, usually the install prefix.
        """
        self.pkg_root = Path(pkg_root)
        self.old = old
        self.new = new
        self._originals: dict[Path, bytes] = {}
        self._previous_handler: Any = None
        self._handler_installed = False

    def apply(self) -> None:
        """Replace the build location by the install prefix."""
        logger.info("Updating paths from %s to %s", self.old, self.new)
        for path in rewrite_targets(self.pkg_root):
            if replace_in_file(path, self.old, self.new, self._originals):
                logger.debug("Rewrote %s", path)

    def restore(self) -> None:
        """Put the original content back. Does nothing the second time."""
        if not self._originals:
            return
        logger.info("Updating paths from %s to %s", self.new, self.old)
        for path, original in list(self._originals.items()):
            path.write_bytes(original)
            del self._originals[path]

    @property
    def rewritten(self) -> list[Path]:
        """Files currently holding the install prefix."""
        return sorted(self._originals)

    def _install_handler(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        self._previous_handler = signal.signal(signal.SIGTERM, _terminate)
        self._handler_installed = True

    def _restore_handler(self) -> None:
        if not self._handler_installed:
            return
        previous = self._previous_handler
        if previous is None:
            previous = signal.SIG_DFL
        signal.signal(signal.SIGTERM, previous)
        self._handler_installed = False

    def __enter__(self) -> Self:
        """Install the SIGTERM handler and rewrite the paths."""
        self._install_handler()
        try:
            self.apply()
        except BaseException:
            self.restore()
            self._restore_handler()
            raise
        return self

    def __exit__(self, *args: object) -> None:
        """Restore the paths and the previous SIGTERM handler."""
        try:
            self.restore()
        finally:
            self._restore_handler()


__all__ = ["VirtualenvRewrite", "replace_in_file", "rewrite_targets"]
