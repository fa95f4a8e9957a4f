"""Run options: the command mode and flags of a single invocation."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class CommandMode(Enum):
    """Which flow a run executes."""

    BACKUP = "backup"
    RESTORE = "restore"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: Optional[str]) -> "CommandMode":
        """Map the positional command token, anything unrecognised is UNKNOWN."""
        for mode in (cls.BACKUP, cls.RESTORE):
            if token == mode.value:
                return mode
        return cls.UNKNOWN


@dataclass(frozen=True)
class RunOptions:
    """Immutable options built once by the argument parser.

    Attributes:
        command: Selected command mode
        user_data: cloud-init user-data file embedded into the autoinstall image
        skip_home: Do not archive the home directories
        skip_root: Do not archive the system directories
        skip_all: Do not create any archive
        skip_iso: Do not build the autoinstall image
        config_path: Explicit configuration file
    """

    command: CommandMode = CommandMode.UNKNOWN
    user_data: Optional[Path] = None
    skip_home: bool = False
    skip_root: bool = False
    skip_all: bool = False
    skip_iso: bool = False
    config_path: Optional[str] = None

    @property
    def archive_root(self) -> bool:
        return not (self.skip_root or self.skip_all)

    @property
    def archive_home(self) -> bool:
        return not (self.skip_home or self.skip_all)

    @property
    def build_iso(self) -> bool:
        return self.command is CommandMode.BACKUP and not self.skip_iso
