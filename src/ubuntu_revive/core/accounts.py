"""Extraction and replay of user, group and shadow records.

Only regular accounts are carried over: records whose numeric id (third
colon separated field) is at or above the threshold and is not the id of
the ``nobody`` account.
"""

import logging
from pathlib import Path
from typing import Iterable

from .manifest import GROUP_BACKUP, PASSWD_BACKUP, SHADOW_BACKUP

logger = logging.getLogger(__name__)

ID_THRESHOLD = 500
NOBODY_ID = 65534

# (live file, backup file) pairs
ACCOUNT_FILES = (
    ("passwd", PASSWD_BACKUP),
    ("group", GROUP_BACKUP),
    ("shadow", SHADOW_BACKUP),
)


def record_name(line: str) -> str:
    return line.split(":", 1)[0]


def record_id(line: str) -> int | None:
    fields = line.split(":")
    if len(fields) < 3:
        return None
    try:
        return int(fields[2])
    except ValueError:
        return None


def is_regular_id(value: int | None, threshold=ID_THRESHOLD, nobody=NOBODY_ID) -> bool:
    return value is not None and value >= threshold and value != nobody


def filter_records(
    lines: Iterable[str], threshold=ID_THRESHOLD, nobody=NOBODY_ID
) -> list[str]:
    """passwd or group records belonging to regular accounts."""
    return [
        line
        for line in lines
        if line.strip() and is_regular_id(record_id(line), threshold, nobody)
    ]


def filter_shadow(lines: Iterable[str], names: Iterable[str]) -> list[str]:
    """shadow records of the given user names, matched on the name field."""
    wanted = set(names)
    return [line for line in lines if line.strip() and record_name(line) in wanted]


def _read_lines(path: Path) -> list[str]:
    return Path(path).read_text(encoding="utf-8").splitlines()


def _write_lines(path: Path, lines: list[str], mode: int = 0o600) -> None:
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    path.chmod(mode)


def extract_accounts(
    etc_dir: Path, manifest_dir: Path, threshold=ID_THRESHOLD, nobody=NOBODY_ID
) -> dict[str, int]:
    """Write passwd/group/shadow backups of regular accounts.

    Returns:
        Number of records written per backup file
    """
    etc_dir = Path(etc_dir)
    manifest_dir = Path(manifest_dir)

    users = filter_records(_read_lines(etc_dir / "passwd"), threshold, nobody)
    groups = filter_records(_read_lines(etc_dir / "group"), threshold, nobody)
    shadow = filter_shadow(
        _read_lines(etc_dir / "shadow"), (record_name(u) for u in users)
    )

    _write_lines(manifest_dir / PASSWD_BACKUP, users)
    _write_lines(manifest_dir / GROUP_BACKUP, groups)
    _write_lines(manifest_dir / SHADOW_BACKUP, shadow)

    counts = {
        PASSWD_BACKUP: len(users),
        GROUP_BACKUP: len(groups),
        SHADOW_BACKUP: len(shadow),
    }
    logger.info(
        "Saved %d users, %d groups, %d shadow entries",
        counts[PASSWD_BACKUP],
        counts[GROUP_BACKUP],
        counts[SHADOW_BACKUP],
    )
    return counts


def append_records(backup: Path, live: Path) -> int:
    """Append backed up records to a live account file.

    Records whose name already exists in the live file are skipped.

    Returns:
        Number of appended records
    """
    current = Path(live).read_text(encoding="utf-8")
    existing = {record_name(line) for line in current.splitlines() if line.strip()}
    records = [line for line in _read_lines(backup) if line.strip()]
    new = [line for line in records if record_name(line) not in existing]
    if len(records) > len(new):
        logger.warning(
            "%s: %d record(s) already present, skipped", live, len(records) - len(new)
        )
    if not new:
        return 0

    with open(live, "a", encoding="utf-8") as f:
        if current and not current.endswith("\n"):
            f.write("\n")
        for line in new:
            f.write(f"{line}\n")
    logger.debug("Appended %d record(s) to %s", len(new), live)
    return len(new)


def restore_accounts(manifest_dir: Path, etc_dir: Path) -> dict[str, int]:
    """Append all three account backups to the live files in etc_dir."""
    counts = {}
    for live_name, backup_name in ACCOUNT_FILES:
        counts[live_name] = append_records(
            Path(manifest_dir) / backup_name, Path(etc_dir) / live_name
        )
    logger.info(
        "Restored %d users, %d groups, %d shadow entries",
        counts["passwd"],
        counts["group"],
        counts["shadow"],
    )
    return counts
