"""Core operations for ubuntu-revive.

This package contains the backup and restore flows and the building blocks
they are made of, independent of the command line interface.
"""

from .backup import run_backup
from .options import CommandMode, RunOptions
from .restore import run_restore

__all__ = [
    "CommandMode",
    "RunOptions",
    "run_backup",
    "run_restore",
]
