"""Tests for the CLI dispatcher."""

from pathlib import Path
from unittest.mock import patch

import pytest
from filelock import FileLock

from ubuntu_revive import __version__
from ubuntu_revive.cli import dispatcher
from ubuntu_revive.config import Config
from ubuntu_revive.core.options import CommandMode, RunOptions
from ubuntu_revive.core.preconditions import PreconditionError


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.global_config.lock_file = str(tmp_path / "ubuntu-revive.lock")
    return cfg


@pytest.fixture
def base_dir(tmp_path):
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def minimal_config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(f'[global]\nlock_file = "{tmp_path / "lock"}"\n')
    return path


class TestBuildRunOptions:
    """Tests for argument parsing into RunOptions."""

    def test_backup_flags(self):
        args = dispatcher.create_parser().parse_args(
            ["backup", "-u", "/root/user-data", "-m", "-i"]
        )
        options = dispatcher.build_run_options(args)

        assert options.command is CommandMode.BACKUP
        assert options.user_data == Path("/root/user-data")
        assert options.skip_home
        assert not options.skip_root
        assert options.skip_iso
        assert not options.build_iso

    def test_long_flags(self):
        args = dispatcher.create_parser().parse_args(
            ["--skip-all", "--skip-root", "--verbose", "restore"]
        )
        options = dispatcher.build_run_options(args)

        assert options.command is CommandMode.RESTORE
        assert options.skip_all and options.skip_root
        assert dispatcher.get_log_level(args) == "DEBUG"
        assert not options.archive_root and not options.archive_home

    @pytest.mark.parametrize("token", [None, "frobnicate", "Backup"])
    def test_unknown_command(self, token):
        argv = [token] if token else []
        args = dispatcher.create_parser().parse_args(argv)
        assert dispatcher.build_run_options(args).command is CommandMode.UNKNOWN


class TestMain:
    """Tests for the main entry point."""

    @pytest.mark.parametrize("argv", [[], ["frobnicate"], ["-m"]])
    def test_no_valid_command(self, argv):
        """Test that nothing is checked or mounted without a command."""
        with patch.object(dispatcher, "check_preconditions") as checks, patch.object(
            dispatcher, "MountHandle"
        ) as mount:
            assert dispatcher.main(argv) == 1

        checks.assert_not_called()
        mount.assert_not_called()

    def test_unknown_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            dispatcher.main(["backup", "--bogus"])
        assert exc_info.value.code == 1

    def test_version(self, capsys):
        assert dispatcher.main(["-V"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_precondition_failure(self, minimal_config_file):
        with patch.object(
            dispatcher,
            "check_preconditions",
            side_effect=PreconditionError("Not superuser."),
        ), patch.object(dispatcher, "MountHandle") as mount:
            assert dispatcher.main(["restore", "-c", str(minimal_config_file)]) == 1

        mount.assert_not_called()

    def test_config_error(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[global\n")
        with patch.object(dispatcher, "check_preconditions") as checks:
            assert dispatcher.main(["restore", "-c", str(bad)]) == 1
        checks.assert_not_called()

    def test_config_value_of_wrong_type(self, tmp_path):
        """Test that a bad value type ends the run with exit code 1."""
        bad = tmp_path / "bad.toml"
        bad.write_text("[global]\nlog_file = 123\n")
        with patch.object(dispatcher, "check_preconditions") as checks:
            assert dispatcher.main(["restore", "-c", str(bad)]) == 1
        checks.assert_not_called()

    def test_hands_over_to_run_command(self, minimal_config_file):
        with patch.object(dispatcher, "check_preconditions"), patch.object(
            dispatcher, "run_command", return_value=0
        ) as run:
            assert dispatcher.main(["backup", "-u", "ud", "-c", str(minimal_config_file)]) == 0

        options, config = run.call_args.args
        assert options.command is CommandMode.BACKUP
        assert config.global_config.lock_file.endswith("lock")


class TestRunCommand:
    """Tests for run_command: lock, mount, flow and cleanup."""

    def test_backup(self, runner, config, base_dir, sysroot):
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        assert dispatcher.run_command(options, config, base_dir, sysroot) == 0

        names = [c[0] for c in runner.calls]
        assert names[0] == "mount"
        assert names[-1] == "umount"
        assert names.count("tar") == 2
        assert list(base_dir.iterdir()) == []

    def test_backup_fatal_step_unmounts(self, make_runner, config, base_dir, sysroot):
        runner = make_runner(fail={"apt-clone"})
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

        assert runner.commands("tar") == []
        assert len(runner.commands("umount")) == 1
        assert list(base_dir.iterdir()) == []

    def test_backup_nonfatal_failure_exit_code(self, make_runner, config, base_dir, sysroot):
        make_runner(fail={"tar"})
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

    def test_mount_failure(self, make_runner, config, base_dir, sysroot):
        runner = make_runner(fail={"mount"})
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

        assert [c[0] for c in runner.calls] == ["mount"]
        assert list(base_dir.iterdir()) == []

    def test_restore_without_backups(self, runner, config, base_dir, sysroot):
        options = RunOptions(command=CommandMode.RESTORE)

        assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

        assert len(runner.commands("umount")) == 1
        assert list(base_dir.iterdir()) == []

    def test_lock_held(self, runner, config, base_dir, sysroot):
        """Test that a second concurrent run is refused."""
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        with FileLock(config.global_config.lock_file):
            assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

        assert runner.calls == []

    def test_keyboard_interrupt(self, runner, config, base_dir, sysroot):
        options = RunOptions(command=CommandMode.BACKUP, skip_iso=True)

        with patch.object(dispatcher, "cmd_backup", side_effect=KeyboardInterrupt):
            assert dispatcher.run_command(options, config, base_dir, sysroot) == 1

        assert len(runner.commands("umount")) == 1
        assert list(base_dir.iterdir()) == []

    def test_unknown_command(self, runner, config):
        assert dispatcher.run_command(RunOptions(), config) == 1
        assert runner.calls == []
