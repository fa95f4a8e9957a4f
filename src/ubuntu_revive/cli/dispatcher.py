"""CLI dispatcher.

Parses the command line into ``RunOptions``, checks preconditions, takes the
host lock, mounts the share and hands over to the backup or restore command.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from filelock import FileLock, Timeout

from .. import __util__
from ..__logger__ import add_file_handler, create_logger
from ..config import Config, ConfigError, resolve_config
from ..core.mount import MountHandle
from ..core.options import CommandMode, RunOptions
from ..core.preconditions import PreconditionError, check_preconditions
from .common import UsageErrorParser, add_verbosity_args, get_log_level

logger = logging.getLogger(__name__)

DESCRIPTION = """\
Create a backup of the data needed to recreate this server, or restore one.

commands:
  backup    Create a backup of the current system, installed packages and
            home directories
  restore   Restore users, system config and home directories
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = UsageErrorParser(
        prog="ubuntu-revive",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "command",
        nargs="?",
        metavar="{backup,restore}",
        help="Command to run",
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    group = parser.add_argument_group("Backup options")
    group.add_argument(
        "-u",
        "--user-data",
        metavar="PATH",
        help="Path to user-data file. Required for backup",
    )
    group.add_argument(
        "-m",
        "--skip-home",
        action="store_true",
        help="Skip creating a backup of home directories. By default one gzipped "
        "tarball of the complete /home directory will be created",
    )
    group.add_argument(
        "-r",
        "--skip-root",
        action="store_true",
        help="Skip creating a backup of root files",
    )
    group.add_argument(
        "-t",
        "--skip-all",
        action="store_true",
        help="Skip creating a backup of both home directories and root files. "
        "This only creates an apt-clone and additional system information",
    )
    group.add_argument(
        "-i",
        "--skip-iso",
        action="store_true",
        help="Skip building the autoinstall ISO image",
    )

    return parser


def build_run_options(args: argparse.Namespace) -> RunOptions:
    """Freeze parsed arguments into RunOptions."""
    user_data = getattr(args, "user_data", None)
    return RunOptions(
        command=CommandMode.from_token(getattr(args, "command", None)),
        user_data=Path(user_data).expanduser() if user_data else None,
        skip_home=getattr(args, "skip_home", False),
        skip_root=getattr(args, "skip_root", False),
        skip_all=getattr(args, "skip_all", False),
        skip_iso=getattr(args, "skip_iso", False),
        config_path=getattr(args, "config", None),
    )


def cmd_backup(
    options: RunOptions, config: Config, mount: MountHandle, sysroot: Path
) -> int:
    """Execute backup command."""
    from .backup import execute_backup

    return execute_backup(options, config, mount, sysroot)


def cmd_restore(
    options: RunOptions, config: Config, mount: MountHandle, sysroot: Path
) -> int:
    """Execute restore command."""
    from .restore import execute_restore

    return execute_restore(options, config, mount, sysroot)


def run_command(
    options: RunOptions,
    config: Config,
    base_dir: Path | None = None,
    sysroot: Path = Path("/"),
) -> int:
    """Lock, mount and run the selected command.

    The share is unmounted and the temporary directory removed on every
    path out of this function.

    Returns:
        Exit code
    """
    handlers: dict[CommandMode, Callable] = {
        CommandMode.BACKUP: cmd_backup,
        CommandMode.RESTORE: cmd_restore,
    }
    handler = handlers.get(options.command)
    if handler is None:
        logger.error("NO VALID command supplied")
        return 1

    lock_file = config.global_config.lock_file
    try:
        with FileLock(lock_file, timeout=0):
            with MountHandle(config.share, base_dir=base_dir) as mount:
                return handler(options, config, mount, sysroot)
    except Timeout:
        logger.error("Another run holds the lock %s", lock_file)
        return 1
    except __util__.AbortError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt as e:
        logger.error("Interrupted: %s", str(e) or "keyboard interrupt")
        return 1
    except Exception as e:
        logger.error("Unexpected error: %s", e)
        logger.debug("Exception details:", exc_info=True)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ubuntu-revive CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    from .. import __version__

    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"ubuntu-revive {__version__}")
        return 0

    create_logger(get_log_level(args))
    options = build_run_options(args)

    if options.command is CommandMode.UNKNOWN:
        parser.print_usage(sys.stderr)
        logger.error("NO VALID command supplied")
        return 1

    try:
        config, warnings = resolve_config(options.config_path)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    for warning in warnings:
        logger.warning("Config: %s", warning)

    if config.global_config.log_file:
        try:
            add_file_handler(config.global_config.log_file)
        except OSError as e:
            logger.error("Cannot open log file: %s", e)
            return 1

    try:
        check_preconditions(options)
    except PreconditionError as e:
        logger.error("%s", e)
        return 1

    return run_command(options, config)
