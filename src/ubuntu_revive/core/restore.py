"""Restore flow: replay a manifest directory over the running system.

Every step is attempted even when an earlier one failed, so as much as
possible gets recovered. Failures are logged and collected in the report.
Validation of the manifest happens before the first step; a manifest with
missing artifacts never touches the system.
"""

import logging
from pathlib import Path

from .. import __util__
from . import accounts, packages
from .archive import extract_archive
from .manifest import HOME_ARCHIVE, ROOT_ARCHIVE, Manifest
from .report import FlowReport

logger = logging.getLogger(__name__)

CONFIRMATION = "YES"


class RestoreAborted(__util__.AbortError):
    """The restore was declined or its input is invalid."""


def check_confirmation(answer: str | None) -> None:
    """Only the exact literal confirmation lets a restore proceed."""
    if (answer or "").strip() != CONFIRMATION:
        raise RestoreAborted("Bailing out of the restore command.")
    logger.info("Confirmed to restore!")


def run_restore(manifest: Manifest, sysroot: Path = Path("/")) -> FlowReport:
    """Restore accounts, packages and files from manifest.

    Raises:
        ManifestError: if a required artifact is missing (before any change)
    """
    manifest.verify()

    report = FlowReport("restore")
    sysroot = Path(sysroot)

    logger.info("Restoring users...")
    report.run("accounts", accounts.restore_accounts, manifest.path, sysroot / "etc")

    logger.info("Restoring apt packages from apt-clone...")
    report.run("packages", packages.restore_packages, manifest.path)
    report.run("package holds", packages.restore_holds, manifest.path)

    logger.info("Restoring system files...")
    report.run(ROOT_ARCHIVE, extract_archive, manifest.artifact(ROOT_ARCHIVE), sysroot)

    logger.info("Restoring home directories...")
    report.run(HOME_ARCHIVE, extract_archive, manifest.artifact(HOME_ARCHIVE), sysroot)

    return report.finish()
