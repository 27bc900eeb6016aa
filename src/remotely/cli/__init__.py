"""Command line interface for remotely."""

from .dispatcher import main

__all__ = ["main"]
