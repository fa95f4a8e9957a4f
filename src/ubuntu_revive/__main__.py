# pyright: standard

"""ubuntu-revive: ubuntu_revive/__main__.py.

Back up the state needed to rebuild this Ubuntu server to a network share,
and restore it onto a freshly installed system.
Requires Python >= 3.11, apt-clone, and root privileges.
"""

import sys

from .cli.dispatcher import main as cli_main


def main() -> None:
    """Console script entry point."""
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
