# pyright: standard

"""ubuntu-revive: ubuntu_revive/__logger__.py
A common logger for displaying through rich.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)


def create_logger(level: str | int = "INFO") -> None:
    """Helper function to setup logging for a run."""
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=level,
        handlers=[rich_handler],
        force=True,
    )


def add_file_handler(path: Path | str) -> logging.Handler:
    """Mirror all log records into a plain text file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.getLogger().addHandler(handler)
    return handler
