"""Pytest configuration and shared fixtures."""

import subprocess
from pathlib import Path

import pytest

from ubuntu_revive import __util__
from ubuntu_revive.core import manifest as mf

PASSWD = """\
root:x:0:0:root:/root:/bin/bash
daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin
malice:x:120:120::/var/lib/malice:/usr/sbin/nologin
svc:x:499:499::/var/lib/svc:/usr/sbin/nologin
bob:x:500:500::/home/bob:/bin/bash
alice:x:1000:1000:Alice,,,:/home/alice:/bin/bash
nobody:x:65534:65534:nobody:/nonexistent:/usr/sbin/nologin
"""

GROUP = """\
root:x:0:
adm:x:4:syslog,alice
docker:x:999:alice
bob:x:500:
alice:x:1000:
nogroup:x:65534:
"""

SHADOW = """\
root:!:19000:0:99999:7:::
daemon:*:19000:0:99999:7:::
malice:*:19000:0:99999:7:::
svc:*:19000:0:99999:7:::
bob:$6$bobsalt$hash:19000:0:99999:7:::
alice:$6$alicesalt$hash:19000:0:99999:7:::
nobody:*:19000:0:99999:7:::
"""


class FakeRunner:
    """Stand-in for ``__util__.exec_subprocess`` recording every command.

    Commands whose name (``apt-clone``) or name plus first argument
    (``apt-clone restore``) is listed in ``fail`` fail the way the real
    runner reports failures.
    """

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls: list[list[str]] = []

    def commands(self, name: str) -> list[list[str]]:
        return [c for c in self.calls if c[0] == name]

    def _fails(self, command) -> bool:
        keys = {command[0]}
        if len(command) > 1:
            keys.add(f"{command[0]} {command[1]}")
        return bool(keys & self.fail)

    def __call__(self, command, method="check_output", **kwargs):
        command = [str(c) for c in command]
        self.calls.append(command)
        name = command[0]

        if self._fails(command):
            if method == "run":
                return subprocess.CompletedProcess(command, 2)
            raise __util__.AbortError(f"{name} exited with status 1")

        if name == "uname":
            return "Linux nuckie 5.4.0-150-generic #167-Ubuntu SMP x86_64 GNU/Linux\n"
        if name == "lsb_release":
            return "Ubuntu 20.04.6 LTS\n"
        if name == "apt-mark" and command[1].startswith("show"):
            return {
                "showauto": "libc6\nlibssl1.1\n",
                "showmanual": "nginx\nvim\n",
                "showhold": "linux-image-generic\n",
            }[command[1]]
        if name == "apt-clone" and command[1] == "clone":
            Path(f"{command[-1]}.apt-clone.tar.gz").touch()
        if name == "tar" and "--create" in command:
            Path(command[command.index("--file") + 1]).touch()
        if method == "run":
            return subprocess.CompletedProcess(command, 0)
        return 0 if method == "check_call" else ""


@pytest.fixture
def make_runner(monkeypatch):
    """Install a FakeRunner, optionally failing some commands."""

    def factory(fail=()):
        runner = FakeRunner(fail)
        monkeypatch.setattr(__util__, "exec_subprocess", runner)
        return runner

    return factory


@pytest.fixture
def runner(make_runner):
    return make_runner()


@pytest.fixture
def sysroot(tmp_path):
    """A system root with passwd, group and shadow files."""
    root = tmp_path / "sysroot"
    etc = root / "etc"
    etc.mkdir(parents=True)
    (etc / "passwd").write_text(PASSWD)
    (etc / "group").write_text(GROUP)
    (etc / "shadow").write_text(SHADOW)
    return root


@pytest.fixture
def share_dir(tmp_path):
    """Directory standing in for the mounted share."""
    share = tmp_path / "share"
    share.mkdir()
    return share


@pytest.fixture
def complete_manifest(share_dir):
    """A manifest directory holding every artifact a restore needs."""
    path = share_dir / "02-01-2026"
    path.mkdir()
    (path / mf.PASSWD_BACKUP).write_text(
        "alice:x:1000:1000:Alice,,,:/home/alice:/bin/bash\n"
        "carol:x:1001:1001::/home/carol:/bin/bash\n"
    )
    (path / mf.GROUP_BACKUP).write_text("alice:x:1000:\ncarol:x:1001:\n")
    (path / mf.SHADOW_BACKUP).write_text(
        "alice:$6$alicesalt$hash:19000:0:99999:7:::\n"
        "carol:$6$carolsalt$hash:19000:0:99999:7:::\n"
    )
    (path / mf.package_state_file("hold")).write_text("linux-image-generic\n")
    for name in (mf.PACKAGES_ARCHIVE, mf.ROOT_ARCHIVE, mf.HOME_ARCHIVE):
        (path / name).write_bytes(b"\x1f\x8b")
    return mf.Manifest(date=mf.parse_stamp(path.name), path=path)


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
log_file = "/var/log/ubuntu-revive.log"
lock_file = "/run/lock/ubuntu-revive.lock"
date_format = "%Y-%m-%d"

[share]
type = "nfs4"
address = "nas.local"
path = "/export/backup"
options = "rw,noatime,vers=4"

[backup]
system_dirs = ["/etc", "/var/www"]
home_dirs = ["/home", "/root"]
excludes = ["/var/log", "*.pid"]
id_threshold = 1000

[iso]
url = "https://example.invalid/jammy-live-server-amd64.iso"
"""


@pytest.fixture
def config_file(tmp_path, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path
