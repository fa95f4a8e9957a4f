"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration. The defaults describe the
backup share and directory layout of the Nuckie server.
"""

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_EXCLUDES = [
    "/home/*/.cache",
    "/var/log",
    "/var/cache/apt/archives",
    "/usr/src/linux-headers*",
    "*.socket",
    "*.pid",
]

DEFAULT_ISO_URL = (
    "https://cdimage.ubuntu.com/ubuntu-server/focal/daily-live/current/"
    "focal-live-server-amd64.iso"
)


@dataclass
class ShareConfig:
    """Remote share holding the manifest directories.

    Attributes:
        type: Filesystem type passed to ``mount -t``
        address: Host serving the share
        path: Exported path on that host
        options: Mount options
    """

    type: str = "nfs"
    address: str = "192.168.178.2"
    path: str = "/volume1/Backup/Nuckie"
    options: str = "rw,noatime"

    @property
    def source(self) -> str:
        return f"{self.address}:{self.path}"


@dataclass
class BackupConfig:
    """What gets captured by a backup run.

    Attributes:
        system_dirs: Paths stored in the root archive
        home_dirs: Paths stored in the home archive
        excludes: Ordered glob patterns excluded from both archives
        id_threshold: Lowest uid/gid treated as a regular account
        nobody_id: uid/gid of the nobody account, never captured
    """

    system_dirs: list[str] = field(default_factory=lambda: ["/etc/fstab", "/var/www"])
    home_dirs: list[str] = field(default_factory=lambda: ["/home"])
    excludes: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    id_threshold: int = 500
    nobody_id: int = 65534


@dataclass
class IsoConfig:
    """Autoinstall image settings.

    Attributes:
        url: Installer image to download and remaster
        volume_prefix: Prefix of the ISO volume id and file name
    """

    url: str = DEFAULT_ISO_URL
    volume_prefix: str = "ubuntu-autoinstall"


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        log_file: Path to log file (None for no file logging)
        lock_file: Host-local lock preventing concurrent runs
        date_format: strftime format of manifest directory names
    """

    log_file: Optional[str] = None
    lock_file: str = "/tmp/.ubuntu-revive.lock"
    date_format: str = "%d-%m-%Y"


@dataclass
class Config:
    """Root configuration object."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    iso: IsoConfig = field(default_factory=IsoConfig)
