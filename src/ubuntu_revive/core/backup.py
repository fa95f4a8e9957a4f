"""Backup flow: capture system state into a manifest directory."""

import logging
import shutil
from pathlib import Path

from .. import package_dir
from ..config import Config
from . import accounts, manifest, packages
from .archive import ArchiveSpec, create_archive
from .iso import AutoinstallImageBuilder
from .options import RunOptions
from .report import FlowReport

logger = logging.getLogger(__name__)


def archive_specs(
    config: Config, options: RunOptions, tmpdir: Path | None = None
) -> list[ArchiveSpec]:
    """Archives a run produces, honouring the skip flags.

    The run's temporary directory (which holds the share mount point) is
    always excluded first.
    """
    excludes = tuple(config.backup.excludes)
    if tmpdir is not None:
        excludes = (str(tmpdir), *excludes)

    specs = []
    if options.archive_root:
        specs.append(
            ArchiveSpec(
                manifest.ROOT_ARCHIVE, tuple(config.backup.system_dirs), excludes
            )
        )
    if options.archive_home:
        specs.append(
            ArchiveSpec(
                manifest.HOME_ARCHIVE, tuple(config.backup.home_dirs), excludes
            )
        )
    return specs


def copy_tool(manifest_dir: Path, source: Path | None = None) -> Path:
    """Store the tool that created this backup next to it."""
    source = Path(source or package_dir())
    target = Path(manifest_dir) / manifest.TOOL_DIR
    shutil.copytree(
        source,
        target,
        ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
        dirs_exist_ok=True,
    )
    return target


def run_backup(
    options: RunOptions,
    config: Config,
    manifest_dir: Path,
    work_dir: Path,
    stamp: str,
    sysroot: Path = Path("/"),
    tmpdir: Path | None = None,
) -> FlowReport:
    """Create every artifact of one backup run in manifest_dir.

    Descriptor, account and package clone failures abort the run. The
    package lists, tool copy, archives and autoinstall image are logged on
    failure and recorded in the returned report.

    Args:
        options: Parsed run options
        config: Effective configuration
        manifest_dir: Date-stamped directory on the mounted share
        work_dir: Local scratch directory
        stamp: Date stamp of this run
        sysroot: Root of the system being backed up
        tmpdir: Run temporary directory, excluded from archives

    Returns:
        FlowReport of all steps
    """
    report = FlowReport("backup")
    manifest_dir = Path(manifest_dir)

    logger.info("Storing system and package information on %s ...", manifest_dir)
    report.run_fatal(
        "distribution descriptor",
        manifest.write_distribution_descriptor,
        manifest_dir,
    )
    report.run_fatal(
        "accounts",
        accounts.extract_accounts,
        Path(sysroot) / "etc",
        manifest_dir,
        config.backup.id_threshold,
        config.backup.nobody_id,
    )
    report.run_fatal("package clone", packages.clone_packages, manifest_dir)
    states = report.run("package states", packages.record_package_states, manifest_dir)
    if states and not all(states.values()):
        report.result("package states").passed = False
    logger.info("Information and clone of apt packages stored.")

    report.run("tool copy", copy_tool, manifest_dir)

    specs = {spec.name: spec for spec in archive_specs(config, options, tmpdir)}
    for name, label in (
        (manifest.ROOT_ARCHIVE, "system directories"),
        (manifest.HOME_ARCHIVE, "home directories"),
    ):
        if name in specs:
            logger.info("Creating backup of %s", label)
            report.run(name, create_archive, specs[name], manifest_dir)
        else:
            report.skip(name, f"backup of {label} disabled")

    iso_name = manifest.iso_name(stamp, config.iso.volume_prefix)
    if options.build_iso:
        builder = AutoinstallImageBuilder(
            url=config.iso.url,
            work_dir=work_dir,
            user_data=options.user_data,
            tool_source=package_dir(),
            stamp=stamp,
            volume_prefix=config.iso.volume_prefix,
        )
        report.run(iso_name, builder.build, manifest_dir / iso_name)
    else:
        report.skip(iso_name, "autoinstall image disabled")

    return report.finish()
