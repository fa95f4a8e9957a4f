"""Backup command: capture this host into a new manifest directory."""

import logging
import time
from pathlib import Path

from .. import __util__, date_stamp
from ..config import Config
from ..core.backup import run_backup
from ..core.mount import MountHandle
from ..core.options import RunOptions

logger = logging.getLogger(__name__)


def execute_backup(
    options: RunOptions, config: Config, mount: MountHandle, sysroot: Path
) -> int:
    """Execute the backup command.

    Args:
        options: Run options
        config: Effective configuration
        mount: Mounted backup share
        sysroot: Root of the system being backed up

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    stamp = date_stamp(config.global_config.date_format)
    manifest_dir = mount.create_run_directory(stamp)

    logger.info(__util__.log_heading(f"Backup started at {time.ctime()}"))
    report = run_backup(
        options,
        config,
        manifest_dir,
        work_dir=mount.work_dir,
        stamp=stamp,
        sysroot=sysroot,
        tmpdir=mount.tmpdir,
    )
    logger.info(__util__.log_heading(f"Backup finished at {time.ctime()}"))

    if not report.ok:
        logger.warning("Backup stored in %s is incomplete", manifest_dir)
        return 1
    logger.info("Backup created and stored on %s.", config.share.source)
    return 0
