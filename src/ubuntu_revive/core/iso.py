"""Remastering of an Ubuntu live-server image into an autoinstall image.

The installer image is downloaded, extracted and modified so it boots
straight into an unattended install driven by a cloud-init ``user-data``
file. A copy of this package is put into the live root filesystem under
``/restore`` so the restore can run from the freshly installed system.
"""

import hashlib
import logging
import shutil
import subprocess
from pathlib import Path

from .. import __util__

logger = logging.getLogger(__name__)

NOCLOUD_DIR = "nocloud"
NOCLOUD_SOURCE = "/cdrom/nocloud/"
SQUASHFS = "casper/filesystem.squashfs"
MD5SUM_FILE = "md5sum.txt"
ISOLINUX_CFG = "isolinux/txt.cfg"
GRUB_CFGS = ("boot/grub/grub.cfg", "boot/grub/loopback.cfg")
KERNEL_SEPARATOR = "---"


class IsoError(__util__.AbortError):
    """Building the autoinstall image failed."""


def kernel_parameters(escape_semicolon: bool) -> str:
    """Extra kernel arguments selecting autoinstall with a nocloud datasource.

    GRUB treats ``;`` as a command separator, so it is escaped there.
    """
    separator = "\\;" if escape_semicolon else ";"
    return f"autoinstall ds=nocloud{separator}s={NOCLOUD_SOURCE}"


def add_kernel_parameters(text: str, parameters: str) -> str:
    """Insert parameters in front of every kernel argument separator."""
    return text.replace(KERNEL_SEPARATOR, f" {parameters}  {KERNEL_SEPARATOR}")


def md5_file(path: Path) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def update_md5sums(iso_dir: Path, relpaths) -> int:
    """Refresh the md5sum.txt entries of the given files.

    Returns:
        Number of updated entries
    """
    iso_dir = Path(iso_dir)
    md5sum_path = iso_dir / MD5SUM_FILE
    if not md5sum_path.is_file():
        logger.warning("%s not found, checksums not updated", md5sum_path)
        return 0

    sums = {f"./{rel}": md5_file(iso_dir / rel) for rel in relpaths}
    lines = md5sum_path.read_text(encoding="utf-8").splitlines()
    updated = 0
    for i, line in enumerate(lines):
        parts = line.split(None, 1)
        if len(parts) == 2 and parts[1] in sums:
            lines[i] = f"{sums[parts[1]]}  {parts[1]}"
            updated += 1
    md5sum_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return updated


class AutoinstallImageBuilder:
    """Build ``<prefix>-<stamp>.iso`` from the configured installer image."""

    def __init__(self, url, work_dir, user_data, tool_source, stamp, volume_prefix):
        self.url = url
        self.work_dir = Path(work_dir)
        self.user_data = Path(user_data)
        self.tool_source = Path(tool_source)
        self.stamp = stamp
        self.volume_id = f"{volume_prefix}-{stamp}"
        self.source_iso = self.work_dir / f"ubuntu-original-{stamp}.iso"
        self.iso_dir = self.work_dir / "iso"
        self.squashfs_dir = self.work_dir / "unpacked-squashfs"
        self.modified: list[str] = []

    def build(self, destination: Path) -> Path:
        self.download()
        self.extract()
        self.patch_boot_configs()
        self.add_nocloud_data()
        self.embed_tool()
        self.update_checksums()
        return self.repackage(destination)

    def _run(self, cmd, step, **kwargs):
        try:
            return __util__.exec_subprocess(cmd, method="check_call", **kwargs)
        except __util__.AbortError as e:
            raise IsoError(f"{step} failed: {e}") from e

    def download(self) -> None:
        logger.info("Downloading installer image %s ...", self.url)
        self._run(
            ["curl", "--progress-bar", "-NSL", self.url, "-o", str(self.source_iso)],
            "Download",
        )
        logger.info("Downloaded and saved to %s", self.source_iso)

    def extract(self) -> None:
        logger.info("Extracting ISO image...")
        self._run(
            ["7z", "-y", "x", str(self.source_iso), f"-o{self.iso_dir}"],
            "Extraction",
            stdout=subprocess.DEVNULL,
        )
        shutil.rmtree(self.iso_dir / "[BOOT]", ignore_errors=True)
        logger.info("Extracted to %s", self.iso_dir)

    def patch_boot_configs(self) -> None:
        logger.info("Adding autoinstall parameters to kernel command lines...")
        targets = [(ISOLINUX_CFG, False)] + [(cfg, True) for cfg in GRUB_CFGS]
        for rel, escape in targets:
            path = self.iso_dir / rel
            if not path.is_file():
                logger.warning("%s not present in image, skipped", rel)
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                raise IsoError(f"{rel} is not valid UTF-8: {e}") from e
            path.write_text(
                add_kernel_parameters(text, kernel_parameters(escape)),
                encoding="utf-8",
            )
            self.modified.append(rel)
        if not self.modified:
            raise IsoError("No boot configuration found in image")

    def add_nocloud_data(self) -> None:
        logger.info("Adding user-data and meta-data files...")
        nocloud = self.iso_dir / NOCLOUD_DIR
        nocloud.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.user_data, nocloud / "user-data")
        (nocloud / "meta-data").touch()

    def embed_tool(self) -> None:
        logger.info("Updating ISO to include restore tool...")
        squashfs = self.iso_dir / SQUASHFS
        self._run(
            ["unsquashfs", "-f", "-d", str(self.squashfs_dir), str(squashfs)],
            "unsquashfs",
            stdout=subprocess.DEVNULL,
        )
        target = self.squashfs_dir / "restore" / self.tool_source.name
        shutil.copytree(
            self.tool_source,
            target,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
            dirs_exist_ok=True,
        )
        squashfs.unlink()
        self._run(
            ["mksquashfs", str(self.squashfs_dir), str(squashfs)],
            "mksquashfs",
            stdout=subprocess.DEVNULL,
        )
        self.modified.append(SQUASHFS)

    def update_checksums(self) -> None:
        logger.info("Updating %s with hashes of modified files...", MD5SUM_FILE)
        updated = update_md5sums(self.iso_dir, self.modified)
        logger.info("Updated %d hash(es).", updated)

    def repackage(self, destination: Path) -> Path:
        logger.info("Repackaging extracted files into an ISO image...")
        destination = Path(destination)
        self._run(
            [
                "mkisofs",
                "-quiet",
                "-D",
                "-r",
                "-V",
                self.volume_id,
                "-cache-inodes",
                "-J",
                "-l",
                "-b",
                "isolinux/isolinux.bin",
                "-c",
                "isolinux/boot.cat",
                "-no-emul-boot",
                "-boot-load-size",
                "4",
                "-boot-info-table",
                "-eltorito-alt-boot",
                "-e",
                "boot/grub/efi.img",
                "-no-emul-boot",
                "-o",
                str(destination),
                ".",
            ],
            "mkisofs",
            cwd=self.iso_dir,
        )
        logger.info("Created autoinstall image %s", destination)
        return destination
