# pyright: standard

"""ubuntu-revive: ubuntu_revive/__util__.py
Common utility code shared between modules.
"""

import contextlib
import logging
import signal
import subprocess

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class AbortError(Exception):
    """Raised when the current run has to be aborted."""


class TerminatedError(KeyboardInterrupt):
    """Raised from a signal handler so cleanup code can unwind normally."""

    def __init__(self, signum: int) -> None:
        super().__init__(f"received signal {signal.Signals(signum).name}")
        self.signum = signum


def log_heading(caption: str) -> str:
    """Formatted heading for logging output sections."""
    return f"{f'--[ {caption} ]':-<50}"


def exec_subprocess(command, method="check_output", **kwargs):
    """Run a command using the given subprocess method.

    Any failure to start the command or a non-zero exit status (for the
    checking methods) is logged and turned into an ``AbortError``.
    """
    logger.debug("Executing: %s", command)
    try:
        return getattr(subprocess, method)(command, **kwargs)
    except FileNotFoundError as e:
        logger.error("Command not found: %s", command[0])
        raise AbortError(f"{command[0]} not found") from e
    except subprocess.CalledProcessError as e:
        logger.error("Error on command: %s", command)
        if e.output:
            logger.error("Captured output: %s", e.output)
        raise AbortError(f"{command[0]} exited with status {e.returncode}") from e


def _raise_terminated(signum, frame):
    raise TerminatedError(signum)


@contextlib.contextmanager
def signals_raise():
    """Turn SIGTERM and SIGHUP into ``TerminatedError`` while active."""
    previous = {}
    for signum in HANDLED_SIGNALS:
        previous[signum] = signal.signal(signum, _raise_terminated)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
