# pyright: standard

"""remotely: remotely/__logger__.py
A common logger printing through rich.
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(file=sys.stderr)
rich_handler = RichHandler(console=cons, show_path=False)
logger = logging.getLogger("remotely")
logger.setLevel(logging.INFO)


def create_logger(level="INFO") -> None:
    """Helper function to route package and root logging through rich."""
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(file=sys.stderr)
    rich_handler = RichHandler(console=cons, show_path=False, show_time=False)

    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(rich_handler)
    logger.setLevel(level)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=level,
        handlers=[rich_handler],
        force=True,
    )
