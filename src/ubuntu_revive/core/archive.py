"""Compressed tar archives of directory trees.

An ``ArchiveSpec`` names the archive, the paths stored in it and an ordered
list of glob patterns excluded from it. Archives store absolute paths and
stay on one filesystem, so extracting them over ``/`` puts every file back
where it came from.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .. import __logger__, __util__

logger = logging.getLogger(__name__)

# tar exit status 1 means some files changed while being read
TAR_WARNING = 1


class ArchiveError(__util__.AbortError):
    """Creating or extracting an archive failed."""


@dataclass(frozen=True)
class ArchiveSpec:
    """What goes into one archive.

    Attributes:
        name: File name of the archive inside the manifest directory
        sources: Absolute paths stored in the archive
        excludes: Glob patterns, passed to tar in this order
    """

    name: str
    sources: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def with_excludes(self, *patterns: str) -> "ArchiveSpec":
        """Copy with patterns put in front of the excludes."""
        return ArchiveSpec(self.name, self.sources, (*patterns, *self.excludes))

    def exclude_args(self) -> list[str]:
        return [f"--exclude={pattern}" for pattern in self.excludes]

    def create_command(self, destination: Path) -> list[str]:
        return [
            "tar",
            "--create",
            "--gzip",
            "--preserve-permissions",
            "--file",
            str(destination),
            "--warning=no-file-changed",
            "--one-file-system",
            "--absolute-names",
            *self.exclude_args(),
            *self.sources,
        ]


def create_archive(spec: ArchiveSpec, directory: Path) -> Path:
    """Create the archive inside directory.

    Raises:
        ArchiveError: if tar fails or no sources exist
    """
    if not spec.sources:
        raise ArchiveError(f"Nothing to archive for {spec.name}")

    destination = Path(directory) / spec.name
    logger.debug("Excluding: %s", ", ".join(spec.excludes))
    with __logger__.cons.status(f"Creating {spec.name} ..."):
        result = __util__.exec_subprocess(
            spec.create_command(destination), method="run", check=False
        )

    if result.returncode == TAR_WARNING:
        logger.warning("Some files changed while creating %s", spec.name)
    elif result.returncode != 0:
        raise ArchiveError(
            f"tar exited with status {result.returncode} creating {destination}"
        )
    logger.info("Created %s", destination)
    return destination


def extract_archive(archive: Path, target: Path = Path("/")) -> None:
    """Extract archive over target, keeping ownership and permissions.

    Raises:
        ArchiveError: if tar fails
    """
    cmd = [
        "tar",
        "--extract",
        "--gzip",
        "--preserve-permissions",
        "--file",
        str(archive),
        "--directory",
        str(target),
    ]
    try:
        with __logger__.cons.status(f"Extracting {Path(archive).name} ..."):
            __util__.exec_subprocess(cmd, method="check_call")
    except __util__.AbortError as e:
        raise ArchiveError(f"Extracting {archive} failed: {e}") from e
