"""Command bodies for the remotely CLI."""

import argparse
import logging

from ..config import find_config_file, load_config
from ..config.loader import generate_example_config
from ..config.schema import RemotelyConfig
from ..session import Session
from ..snapshot import SnapshotManager

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> RemotelyConfig:
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is not None:
        logger.debug("Loading configuration from: %s", config_path)
    config, warnings = load_config(config_path)
    for warning in warnings:
        logger.debug("Config: %s", warning)
    return config


def execute_exec(args: argparse.Namespace) -> int:
    remote_args = list(args.remote_args)
    if remote_args[:1] == ["--"]:
        remote_args = remote_args[1:]
    if not remote_args:
        print("Usage: remotely exec [--no-escape] [--ignore-errors] ARGS...")
        return 1

    config = _load(args)
    check = not args.ignore_errors
    with Session(config) as session:
        if args.no_escape:
            result = session.remotely_no_escape(*remote_args, check=check)
        else:
            result = session.remotely(*remote_args, check=check)
    if not result.ok:
        logger.warning("Ignoring exit status %d", result.returncode)
    return 0


def execute_upload(args: argparse.Namespace) -> int:
    config = _load(args)
    with Session(config) as session:
        session.go()
        session.upload(args.path, *args.rsync_opts)
    return 0


def execute_backup(args: argparse.Namespace) -> int:
    config = _load(args)
    with Session(config) as session:
        session.start_backup(args.name)
        for src in args.sources:
            session.backup(src, *args.rsync_opt)
    logger.info("Backup of %s finished", args.name)
    return 0


def execute_snapshots(args: argparse.Namespace) -> int:
    config = _load(args)
    manager = SnapshotManager(config.require("backup_dir"))
    snapshots = manager.list_snapshots(args.name, include_incomplete=True)
    if not snapshots:
        print(f"No snapshots in backup set {args.name}")
        return 0
    for path in snapshots:
        state = "complete" if manager.is_complete(path) else "incomplete"
        print(f"{path.name}  {state}")
    return 0


def execute_config(args: argparse.Namespace) -> int:
    action = getattr(args, "config_action", None)

    if action == "init":
        print(generate_example_config(), end="")
        return 0
    elif action == "validate":
        config_path = find_config_file(getattr(args, "config", None))
        print(f"Validating: {config_path or 'environment only'}")
        config, warnings = load_config(config_path)
        for warning in warnings:
            print(f"  - {warning}")
        print(f"Host: {config.host or '(unset)'}")
        if config.host is None:
            return 1
        print("Configuration is valid")
        return 0
    else:
        print("Usage: remotely config <validate|init>")
        return 1
