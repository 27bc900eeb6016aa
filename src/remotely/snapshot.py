"""Timestamped snapshot directories for incremental backups.

Layout::

    backup_root/<set name>/<ISO-8601 timestamp>/...

Each snapshot hardlinks unchanged files from the most recent *complete*
snapshot of the same set. A snapshot becomes complete when
``mark_complete()`` drops a marker file into it after all transfers
succeeded; interrupted runs leave no marker and are never used as a link
source.
"""

import fnmatch
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

from filelock import FileLock

from .__logger__ import logger
from .errors import ConfigError, SnapshotCollisionError

SNAPSHOT_PATTERN = "*-*-*"
COMPLETE_MARKER = ".remotely-complete"
LOCK_FILE_NAME = ".remotely.lock"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_name(moment: datetime) -> str:
    """Directory name for a snapshot taken at ``moment``.

    Always UTC, so names keep sorting chronologically across DST changes
    and timezone moves. Naive datetimes are taken as local time.
    """
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


@dataclass
class BackupPaths:
    """Previous and new snapshot directories of one backup run."""

    set_dir: Path
    previous: Optional[Path]
    new: Path


class SnapshotManager:
    """Selects and creates snapshot directories beneath ``backup_root``."""

    def __init__(
        self,
        backup_root: Union[str, Path],
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        # rsync resolves a relative --link-dest against the destination
        self.backup_root = Path(backup_root).expanduser().absolute()
        self.clock = clock or _utc_now

    def set_dir(self, name: str) -> Path:
        if not name or "/" in name or name in (".", ".."):
            raise ConfigError(f"Invalid backup set name: {name!r}")
        return self.backup_root / name

    @staticmethod
    def is_complete(path: Path) -> bool:
        return (Path(path) / COMPLETE_MARKER).is_file()

    def list_snapshots(
        self, name: str, include_incomplete: bool = False
    ) -> List[Path]:
        """Return the snapshots of a set, oldest first."""
        set_dir = self.set_dir(name)
        if not set_dir.is_dir():
            return []

        snapshots = [
            child
            for child in set_dir.iterdir()
            if child.is_dir() and fnmatch.fnmatch(child.name, SNAPSHOT_PATTERN)
        ]
        if not include_incomplete:
            snapshots = [s for s in snapshots if self.is_complete(s)]
        # Names sort chronologically; never rely on directory order
        return sorted(snapshots, key=lambda p: p.name)

    def latest_snapshot(self, name: str) -> Optional[Path]:
        snapshots = self.list_snapshots(name)
        return snapshots[-1] if snapshots else None

    def prepare(self, name: str) -> BackupPaths:
        """Pick the link source and create the directory of a new snapshot.

        Raises:
            ConfigError: if ``name`` is not a usable set name
            SnapshotCollisionError: if the new snapshot directory exists
        """
        set_dir = self.set_dir(name)
        set_dir.mkdir(parents=True, exist_ok=True)

        with FileLock(set_dir / LOCK_FILE_NAME):
            previous = self.latest_snapshot(name)
            new = set_dir / snapshot_name(self.clock())
            try:
                new.mkdir()
            except FileExistsError:
                raise SnapshotCollisionError(
                    f"Snapshot directory already exists: {new}"
                ) from None

        logger.info("Backing up into %s", new)
        if previous is not None:
            logger.info("(Using %s to accelerate)", previous)

        return BackupPaths(set_dir=set_dir, previous=previous, new=new)

    def mark_complete(self, path: Union[str, Path]) -> Path:
        """Record that ``path`` was fully populated."""
        marker = Path(path) / COMPLETE_MARKER
        marker.write_text(f"{snapshot_name(self.clock())}\n")
        logger.debug("Marked snapshot complete: %s", path)
        return marker
