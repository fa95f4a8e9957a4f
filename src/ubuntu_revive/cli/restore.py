"""Restore command: replay a backup over the running system.

The operator picks one of the manifest directories on the share and has to
type the literal confirmation before anything is changed.
"""

import logging
import time
from pathlib import Path

from .. import __util__
from ..config import Config
from ..core.manifest import (
    Manifest,
    find_manifest,
    latest_manifest,
    list_manifests,
)
from ..core.mount import MountHandle
from ..core.options import RunOptions
from ..core.restore import (
    CONFIRMATION,
    RestoreAborted,
    check_confirmation,
    run_restore,
)

logger = logging.getLogger(__name__)


def _prompt(text: str) -> str:
    """Read one answer, EOF and Ctrl-D count as an empty answer."""
    try:
        return input(text).strip()
    except EOFError:
        print("")
        return ""


def _print_manifests(manifests: list[Manifest], default: Manifest) -> None:
    print("")
    print("Available backups:")
    print("")
    for manifest in manifests:
        missing = manifest.missing_artifacts()
        note = f"  (missing: {', '.join(missing)})" if missing else ""
        marker = "*" if manifest == default else " "
        print(f"  {marker} {manifest.name}{note}")
    print("")


def select_manifest(manifests: list[Manifest]) -> Manifest:
    """Ask which backup to restore, defaulting to the latest one.

    Raises:
        RestoreAborted: if there is no backup or the answer names none
    """
    default = latest_manifest(manifests)
    if default is None:
        raise RestoreAborted("No backup directories found")

    _print_manifests(manifests, default)
    answer = _prompt(f"Enter backup directory to restore from: ({default.name}) ")
    selected = find_manifest(manifests, answer or default.name)
    if selected is None:
        raise RestoreAborted(f"{answer} is not a valid backup directory")
    return selected


def execute_restore(
    options: RunOptions, config: Config, mount: MountHandle, sysroot: Path
) -> int:
    """Execute the restore command.

    Args:
        options: Run options
        config: Effective configuration
        mount: Mounted backup share
        sysroot: Root of the system to restore into

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    manifests = list_manifests(mount.mountpoint, config.global_config.date_format)
    manifest = select_manifest(manifests)
    print(f"Using backup to restore from: {manifest.path}")

    answer = _prompt(
        "Are you sure to restore the configuration into the current system? "
        f"({CONFIRMATION}/no): "
    )
    check_confirmation(answer)

    logger.info(__util__.log_heading(f"Restore started at {time.ctime()}"))
    report = run_restore(manifest, sysroot)
    logger.info(__util__.log_heading(f"Restore finished at {time.ctime()}"))

    if not report.ok:
        logger.warning("Restore was only partially successful")
        return 1
    logger.info("Restore completed.")
    return 0
