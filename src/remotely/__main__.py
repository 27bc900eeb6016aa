"""remotely: remotely/__main__.py."""

import sys

from .cli.dispatcher import main as _main


def main() -> None:
    """Console script entry point."""
    sys.exit(_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
