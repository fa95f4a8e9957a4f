"""Command line interface for ubuntu-revive."""

from .dispatcher import main

__all__ = ["main"]
