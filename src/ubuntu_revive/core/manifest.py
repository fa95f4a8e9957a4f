"""Layout of a backup manifest directory.

One directory per backup run, named after the run date, holding a fixed
set of artifacts::

    <share>/<DD-MM-YYYY>/
        distribution.desc
        passwd.backup  group.backup  shadow.backup
        packages.apt-clone.tar.gz  packages.auto  packages.manual  packages.hold
        backuproot.tar.gz  backuphome.tar.gz
        ubuntu_revive/
        ubuntu-autoinstall-<DD-MM-YYYY>.iso
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from .. import DATE_FORMAT, __util__

logger = logging.getLogger(__name__)

DISTRIBUTION_DESC = "distribution.desc"
PASSWD_BACKUP = "passwd.backup"
GROUP_BACKUP = "group.backup"
SHADOW_BACKUP = "shadow.backup"
PACKAGES_PREFIX = "packages"
PACKAGES_ARCHIVE = f"{PACKAGES_PREFIX}.apt-clone.tar.gz"
ROOT_ARCHIVE = "backuproot.tar.gz"
HOME_ARCHIVE = "backuphome.tar.gz"
TOOL_DIR = "ubuntu_revive"

REQUIRED_FOR_RESTORE = (
    PACKAGES_ARCHIVE,
    PASSWD_BACKUP,
    GROUP_BACKUP,
    SHADOW_BACKUP,
    ROOT_ARCHIVE,
    HOME_ARCHIVE,
)


class ManifestError(__util__.AbortError):
    """A manifest directory is unusable."""


def iso_name(stamp: str, prefix: str = "ubuntu-autoinstall") -> str:
    return f"{prefix}-{stamp}.iso"


def package_state_file(state: str) -> str:
    return f"{PACKAGES_PREFIX}.{state}"


def parse_stamp(name: str, fmt: str = DATE_FORMAT) -> date | None:
    """Date encoded in a manifest directory name, None if it is not one."""
    try:
        return datetime.strptime(name, fmt).date()
    except ValueError:
        return None


@dataclass(frozen=True, order=True)
class Manifest:
    """A manifest directory found on the share."""

    date: date
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def artifact(self, name: str) -> Path:
        return self.path / name

    def missing_artifacts(self, required=REQUIRED_FOR_RESTORE) -> list[str]:
        return [name for name in required if not self.artifact(name).is_file()]

    def verify(self, required=REQUIRED_FOR_RESTORE) -> None:
        """Raise ManifestError unless every required artifact is present."""
        missing = self.missing_artifacts(required)
        if missing:
            raise ManifestError(
                f"Backup files missing in {self.path}: {', '.join(missing)}"
            )
        logger.info("Backup files exist.")


def list_manifests(root: Path, fmt: str = DATE_FORMAT) -> list[Manifest]:
    """All manifest directories below root, oldest first.

    Ordering uses the date parsed from the directory name, not the
    directory listing order.
    """
    manifests = []
    for item in Path(root).iterdir():
        if not item.is_dir():
            continue
        stamp = parse_stamp(item.name, fmt)
        if stamp is None:
            logger.debug("Ignoring %s, not a backup directory", item)
            continue
        manifests.append(Manifest(date=stamp, path=item))
    return sorted(manifests)


def latest_manifest(manifests: list[Manifest]) -> Manifest | None:
    return max(manifests) if manifests else None


def find_manifest(manifests: list[Manifest], name: str) -> Manifest | None:
    for manifest in manifests:
        if manifest.name == name:
            return manifest
    return None


def write_distribution_descriptor(manifest_dir: Path) -> Path:
    """Store kernel and distribution identification of this host."""
    uname = __util__.exec_subprocess(["uname", "-a"], text=True)
    release = __util__.exec_subprocess(["lsb_release", "-ds"], text=True)
    path = Path(manifest_dir) / DISTRIBUTION_DESC
    path.write_text(f"{uname.rstrip()}\n{release.rstrip()}\n", encoding="utf-8")
    logger.debug("Wrote %s", path)
    return path
