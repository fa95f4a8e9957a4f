"""Mount handling for the remote backup share.

The share is mounted below a private temporary directory that only lives
for the duration of one run. ``MountHandle`` is a context manager: leaving
the ``with`` block in any way (return, exception, Ctrl-C, SIGTERM/SIGHUP)
unmounts the share and removes the temporary directory.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path

from .. import __util__
from ..config import ShareConfig

logger = logging.getLogger(__name__)


class MountError(__util__.AbortError):
    """Mounting the share or preparing directories on it failed."""


class MountHandle:
    """Binding of the remote share to a local temporary path."""

    def __init__(self, share: ShareConfig, base_dir: Path | str | None = None) -> None:
        self.share = share
        self.base_dir = base_dir
        self.tmpdir: Path | None = None
        self.mounted = False
        self._signals = None

    def __repr__(self) -> str:
        return f"MountHandle({self.share.source!r} -> {self.mountpoint})"

    @property
    def mountpoint(self) -> Path | None:
        return self.tmpdir / "mnt" if self.tmpdir else None

    @property
    def work_dir(self) -> Path | None:
        """Local scratch space that does not end up on the share."""
        return self.tmpdir / "work" if self.tmpdir else None

    def __enter__(self) -> "MountHandle":
        # Cleanup must be armed before anything is mounted.
        self._signals = __util__.signals_raise()
        self._signals.__enter__()
        try:
            self._setup()
        except BaseException:
            self.__exit__(None, None, None)
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self.cleanup()
        finally:
            if self._signals is not None:
                self._signals.__exit__(None, None, None)
                self._signals = None
        return False

    def _setup(self) -> None:
        try:
            self.tmpdir = Path(
                tempfile.mkdtemp(prefix="ubuntu-revive-", dir=self.base_dir)
            )
        except OSError as e:
            raise MountError(f"Could not create temporary working directory: {e}")
        logger.info("Created temporary working directory %s", self.tmpdir)

        self.mountpoint.mkdir(mode=0o700)
        self.work_dir.mkdir(mode=0o700)

        logger.info("Mounting %s on %s ...", self.share.source, self.mountpoint)
        cmd = [
            "mount",
            "-t",
            self.share.type,
            "-o",
            self.share.options,
            self.share.source,
            str(self.mountpoint),
        ]
        try:
            __util__.exec_subprocess(cmd, method="check_call")
        except __util__.AbortError as e:
            raise MountError(f"Mounting failed: {e}") from e
        self.mounted = True
        logger.info("Mounting succeeded.")

    def create_run_directory(self, name: str) -> Path:
        """Create (if absent) the manifest directory of this run on the share."""
        if not self.mounted:
            raise MountError("Share is not mounted")
        run_dir = self.mountpoint / name
        try:
            run_dir.mkdir(exist_ok=True)
        except OSError as e:
            raise MountError(f"Failed to create backup directory {run_dir}: {e}")
        logger.info("Backup directory %s ready.", run_dir)
        return run_dir

    def cleanup(self) -> None:
        """Unmount the share and delete the temporary directory."""
        if self.mounted:
            try:
                __util__.exec_subprocess(
                    ["umount", str(self.mountpoint)], method="check_call"
                )
                self.mounted = False
            except __util__.AbortError as e:
                logger.error("Failed to unmount %s: %s", self.mountpoint, e)

        if self.tmpdir is None:
            return

        if self.mounted or os.path.ismount(self.mountpoint):
            # Removing the tree now would delete files on the share.
            logger.error(
                "%s is still mounted, leaving %s in place", self.mountpoint, self.tmpdir
            )
            return

        shutil.rmtree(self.tmpdir, ignore_errors=True)
        logger.info("Deleted temporary working directory %s", self.tmpdir)
        self.tmpdir = None
