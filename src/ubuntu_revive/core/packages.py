"""Installed package state: apt-clone snapshots and apt-mark lists."""

import logging
import subprocess
from pathlib import Path

from .. import __util__
from .manifest import PACKAGES_ARCHIVE, PACKAGES_PREFIX, package_state_file

logger = logging.getLogger(__name__)

PACKAGE_STATES = ("auto", "manual", "hold")


class PackageError(__util__.AbortError):
    """apt-clone could not snapshot or restore the package state."""


def clone_packages(manifest_dir: Path) -> Path:
    """Snapshot installed packages, including repacked local debs.

    Raises:
        PackageError: if apt-clone fails
    """
    target = Path(manifest_dir) / PACKAGES_PREFIX
    cmd = ["apt-clone", "clone", "--with-dpkg-repack", str(target)]
    try:
        __util__.exec_subprocess(cmd, method="check_call", stdout=subprocess.DEVNULL)
    except __util__.AbortError as e:
        raise PackageError(f"Failed to create clone of apt packages: {e}") from e

    archive = Path(manifest_dir) / PACKAGES_ARCHIVE
    if not archive.is_file():
        raise PackageError(f"apt-clone did not create {archive}")
    return archive


def record_package_states(manifest_dir: Path) -> dict[str, bool]:
    """Write the auto, manual and hold package lists.

    A failing list is logged and reported as False; the others are still
    written.
    """
    results = {}
    for state in PACKAGE_STATES:
        path = Path(manifest_dir) / package_state_file(state)
        try:
            output = __util__.exec_subprocess(["apt-mark", f"show{state}"], text=True)
        except __util__.AbortError as e:
            logger.warning("Could not list %s packages: %s", state, e)
            results[state] = False
            continue
        path.write_text(output, encoding="utf-8")
        logger.debug("Wrote %d %s package(s) to %s", len(output.split()), state, path)
        results[state] = True
    return results


def restore_packages(manifest_dir: Path) -> None:
    """Reinstall the package selection of an apt-clone snapshot.

    Raises:
        PackageError: if apt-clone fails
    """
    archive = Path(manifest_dir) / PACKAGES_ARCHIVE
    cmd = ["apt-clone", "restore", str(archive)]
    try:
        __util__.exec_subprocess(cmd, method="check_call")
    except __util__.AbortError as e:
        raise PackageError(f"apt-clone restore failed: {e}") from e


def restore_holds(manifest_dir: Path) -> int:
    """Hold again every package held at backup time.

    Returns:
        Number of held packages, 0 when no hold list was recorded
    """
    path = Path(manifest_dir) / package_state_file("hold")
    if not path.is_file():
        logger.debug("No hold list in %s", manifest_dir)
        return 0
    held = path.read_text(encoding="utf-8").split()
    if not held:
        return 0
    try:
        __util__.exec_subprocess(["apt-mark", "hold", *held], method="check_call")
    except __util__.AbortError as e:
        raise PackageError(f"apt-mark hold failed: {e}") from e
    logger.info("Held %d package(s) again", len(held))
    return len(held)
