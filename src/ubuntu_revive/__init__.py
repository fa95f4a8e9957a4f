"""ubuntu-revive: ubuntu_revive/__init__.py."""

import time
from pathlib import Path


__version__ = "0.3.0"

DATE_FORMAT = "%d-%m-%Y"


def date_stamp(fmt: str = DATE_FORMAT, now: float | None = None) -> str:
    """Return the manifest directory name for the given (or current) time."""
    return time.strftime(fmt, time.localtime(now))


def package_dir() -> Path:
    """Directory holding this package, copied into every backup."""
    return Path(__file__).resolve().parent
