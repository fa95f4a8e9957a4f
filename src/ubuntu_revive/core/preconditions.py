"""Precondition checks run before anything on the system is touched."""

import logging
import os
import shutil

from .. import __util__
from .options import CommandMode, RunOptions

logger = logging.getLogger(__name__)

MOUNT_TOOLS = ("mount", "umount")
PACKAGE_TOOLS = ("apt-clone", "apt-mark")
ARCHIVE_TOOLS = ("tar", "gzip")
DESCRIPTOR_TOOLS = ("uname", "lsb_release")
ISO_TOOLS = ("curl", "7z", "unsquashfs", "mksquashfs", "mkisofs")


class PreconditionError(__util__.AbortError):
    """A requirement for the run is not met."""


def required_tools(options: RunOptions) -> list[str]:
    """External commands the selected flow will call."""
    tools = [*MOUNT_TOOLS, *PACKAGE_TOOLS, *ARCHIVE_TOOLS]
    if options.command is CommandMode.BACKUP:
        tools.extend(DESCRIPTOR_TOOLS)
        if options.build_iso:
            tools.extend(ISO_TOOLS)
    return tools


def missing_tools(tools) -> list[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def check_superuser() -> None:
    if os.geteuid() != 0:
        raise PreconditionError("Not superuser.")
    logger.info("Starting up...")


def check_user_data(options: RunOptions) -> None:
    """The backup command needs a readable user-data file."""
    if options.user_data is None:
        raise PreconditionError("user-data file was not specified.")
    if not options.user_data.is_file():
        raise PreconditionError(
            f"user-data file could not be found: {options.user_data}"
        )
    if not os.access(options.user_data, os.R_OK):
        raise PreconditionError(
            f"user-data file is not readable: {options.user_data}"
        )


def check_requirements(options: RunOptions) -> None:
    """Verify tools and inputs of the selected flow.

    Raises:
        PreconditionError: naming the missing requirements
    """
    logger.info("Checking for required utilities...")
    missing = missing_tools(required_tools(options))
    if len(missing) == 1:
        raise PreconditionError(f"{missing[0]} is not installed.")
    if missing:
        raise PreconditionError(f"{', '.join(missing)} are not installed.")

    if options.command is CommandMode.BACKUP:
        check_user_data(options)
    logger.info("All required utilities are installed.")


def check_preconditions(options: RunOptions) -> None:
    check_superuser()
    check_requirements(options)
