"""CLI dispatcher.

remotely is mainly used as a library from scripts; the command line exposes
the same operations for one-off use and for shell scripts.
"""

import argparse
import logging
from typing import Callable

from ..__logger__ import create_logger
from ..errors import RemotelyError
from .commands import (
    execute_backup,
    execute_config,
    execute_exec,
    execute_snapshots,
    execute_upload,
)
from .common import create_global_parser, get_log_level

logger = logging.getLogger(__name__)


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="remotely",
        description="Configure and back up a remote host over one SSH connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[create_global_parser()],
    )

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # exec command
    exec_parser = subparsers.add_parser(
        "exec",
        help="Run a command on the remote host",
        description="Run a command remotely, quoted so the remote shell "
        "sees exactly the given arguments",
    )
    exec_parser.add_argument(
        "--no-escape",
        action="store_true",
        help="Pass arguments to the remote shell unquoted (pipes, redirects)",
    )
    exec_parser.add_argument(
        "--ignore-errors",
        action="store_true",
        help="Exit 0 even if the remote command fails",
    )
    exec_parser.add_argument("remote_args", nargs=argparse.REMAINDER)

    # upload command
    upload_parser = subparsers.add_parser(
        "upload",
        help="Render templates and upload a path from the files directory",
        description="Upload FILES_DIR/PATH to /PATH on the remote host",
    )
    upload_parser.add_argument("path", help="Path below the files directory")
    upload_parser.add_argument(
        "rsync_opts",
        nargs=argparse.REMAINDER,
        help="Extra rsync options",
    )

    # backup command
    backup_parser = subparsers.add_parser(
        "backup",
        help="Back up remote paths into a new snapshot",
        description="Create a snapshot of backup set NAME containing the "
        "given absolute remote paths",
    )
    backup_parser.add_argument("name", help="Backup set name")
    backup_parser.add_argument("sources", nargs="+", metavar="SRC")
    backup_parser.add_argument(
        "--rsync-opt",
        action="append",
        default=[],
        metavar="OPT",
        help="Extra rsync option (repeatable, use --rsync-opt=--foo)",
    )

    # snapshots command
    snapshots_parser = subparsers.add_parser(
        "snapshots",
        help="List the snapshots of a backup set",
    )
    snapshots_parser.add_argument("name", help="Backup set name")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_subparsers = config_parser.add_subparsers(dest="config_action")
    config_subparsers.add_parser("validate", help="Validate configuration")
    config_subparsers.add_parser("init", help="Print an example configuration")

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the selected subcommand, turning fatal errors into exit status 1."""
    from .. import __version__

    if args.version:
        print(f"remotely {__version__}")
        return 0

    if not args.command:
        create_subcommand_parser().print_help()
        return 1

    handlers: dict[str, Callable] = {
        "exec": execute_exec,
        "upload": execute_upload,
        "backup": execute_backup,
        "snapshots": execute_snapshots,
        "config": execute_config,
    }

    handler = handlers.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        return 1

    try:
        return handler(args)
    except RemotelyError as e:
        logger.error("%s", e)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_subcommand_parser()
    args = parser.parse_args(argv)
    create_logger(get_log_level(args))
    return run_subcommand(args)
