"""Tests for snapshot selection and creation."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from remotely.errors import ConfigError, ErrorKind, SnapshotCollisionError
from remotely.snapshot import (
    COMPLETE_MARKER,
    SnapshotManager,
    snapshot_name,
)

from conftest import FakeClock


def make_snapshot(set_dir, name, complete=True):
    path = set_dir / name
    path.mkdir(parents=True)
    if complete:
        (path / COMPLETE_MARKER).write_text("done\n")
    return path


class TestSnapshotName:
    """Tests for snapshot_name function."""

    def test_iso_seconds_utc(self):
        """Test the UTC ISO-8601 seconds format."""
        moment = datetime(2024, 6, 1, 12, 30, 5, 999, tzinfo=timezone.utc)
        assert snapshot_name(moment) == "2024-06-01T12:30:05+00:00"

    def test_non_utc_offset(self):
        """Test that other offsets are converted to UTC."""
        tz = timezone(timedelta(hours=2))
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=tz)
        assert snapshot_name(moment) == "2024-01-02T01:04:05+00:00"

    def test_names_sort_across_dst_end(self):
        """Test that the repeated hour when DST ends still sorts in order."""
        summer = timezone(timedelta(hours=2))
        winter = timezone(timedelta(hours=1))
        moments = [
            datetime(2024, 10, 27, 2, 30, tzinfo=summer),
            datetime(2024, 10, 27, 2, 10, tzinfo=winter),
            datetime(2024, 10, 27, 3, 30, tzinfo=winter),
        ]
        names = [snapshot_name(m) for m in moments]
        assert names == sorted(names)


class TestPrepare:
    """Tests for SnapshotManager.prepare."""

    def test_first_run_has_no_previous(self, tmp_path, clock):
        """Test that an empty set has no link source."""
        paths = SnapshotManager(tmp_path, clock=clock).prepare("web")

        assert paths.previous is None
        assert paths.new == tmp_path / "web" / "2024-06-01T00:00:00+00:00"
        assert paths.new.is_dir()
        assert paths.set_dir == tmp_path / "web"

    def test_creates_backup_root(self, tmp_path, clock):
        """Test that missing parent directories are created."""
        root = tmp_path / "does" / "not" / "exist"
        paths = SnapshotManager(root, clock=clock).prepare("db")
        assert paths.new.is_dir()

    def test_selects_lexicographic_maximum(self, tmp_path, clock):
        """Test that the latest snapshot is chosen by name."""
        set_dir = tmp_path / "web"
        for name in (
            "2024-01-01T00:00:00+00:00",
            "2024-03-01T00:00:00+00:00",
            "2023-12-31T00:00:00+00:00",
        ):
            make_snapshot(set_dir, name)

        paths = SnapshotManager(tmp_path, clock=clock).prepare("web")

        assert paths.previous == set_dir / "2024-03-01T00:00:00+00:00"

    def test_selection_ignores_iteration_order(self, tmp_path, clock):
        """Test that directory listing order does not matter."""
        set_dir = tmp_path / "web"
        names = [
            "2024-01-01T00:00:00+00:00",
            "2024-03-01T00:00:00+00:00",
            "2023-12-31T00:00:00+00:00",
        ]
        for name in names:
            make_snapshot(set_dir, name)
        manager = SnapshotManager(tmp_path, clock=clock)

        for order in (names, list(reversed(names))):
            listing = [set_dir / n for n in order]
            with patch("pathlib.Path.iterdir", return_value=iter(listing)):
                latest = manager.latest_snapshot("web")
            assert latest.name == "2024-03-01T00:00:00+00:00"

    def test_ignores_incomplete_snapshots(self, tmp_path, clock):
        """Test that an interrupted snapshot is not a link source."""
        set_dir = tmp_path / "web"
        make_snapshot(set_dir, "2024-01-01T00:00:00+00:00")
        make_snapshot(set_dir, "2024-05-01T00:00:00+00:00", complete=False)

        paths = SnapshotManager(tmp_path, clock=clock).prepare("web")

        assert paths.previous == set_dir / "2024-01-01T00:00:00+00:00"

    def test_ignores_non_snapshot_entries(self, tmp_path, clock):
        """Test that files and unrelated directories are skipped."""
        set_dir = tmp_path / "web"
        set_dir.mkdir()
        (set_dir / "notes").mkdir()
        (set_dir / "2099-01-01-file").write_text("not a dir")

        paths = SnapshotManager(tmp_path, clock=clock).prepare("web")

        assert paths.previous is None

    def test_collision_is_fatal(self, tmp_path, clock):
        """Test that two runs in the same second never share a directory."""
        manager = SnapshotManager(tmp_path, clock=clock)
        first = manager.prepare("web")

        with pytest.raises(SnapshotCollisionError) as excinfo:
            manager.prepare("web")

        assert excinfo.value.kind is ErrorKind.SNAPSHOT_COLLISION
        assert first.new.is_dir()

    def test_collision_leaves_existing_contents(self, tmp_path, clock):
        """Test that a colliding run does not touch the existing snapshot."""
        manager = SnapshotManager(tmp_path, clock=clock)
        first = manager.prepare("web")
        (first.new / "data").write_text("keep")

        with pytest.raises(SnapshotCollisionError):
            manager.prepare("web")

        assert (first.new / "data").read_text() == "keep"

    def test_consecutive_runs_chain(self, tmp_path, clock):
        """Test that each completed run becomes the next link source."""
        manager = SnapshotManager(tmp_path, clock=clock)
        first = manager.prepare("web")
        manager.mark_complete(first.new)
        clock.advance(seconds=1)

        second = manager.prepare("web")

        assert second.previous == first.new
        assert second.new != first.new

    def test_chain_across_dst_end(self, tmp_path):
        """Test that the latest run is picked when local time goes backwards."""
        summer = timezone(timedelta(hours=2))
        winter = timezone(timedelta(hours=1))
        clock = FakeClock(datetime(2024, 10, 27, 2, 30, tzinfo=summer))
        manager = SnapshotManager(tmp_path, clock=clock)

        first = manager.prepare("web")
        manager.mark_complete(first.new)
        clock.now = datetime(2024, 10, 27, 2, 10, tzinfo=winter)
        second = manager.prepare("web")
        manager.mark_complete(second.new)
        clock.now = datetime(2024, 10, 27, 3, 30, tzinfo=winter)
        third = manager.prepare("web")

        assert second.previous == first.new
        assert third.previous == second.new

    def test_relative_root_is_made_absolute(self, tmp_path, clock, monkeypatch):
        """Test that snapshot paths do not depend on the working directory."""
        monkeypatch.chdir(tmp_path)
        manager = SnapshotManager("backups", clock=clock)

        paths = manager.prepare("web")

        assert manager.backup_root == Path.cwd() / "backups"
        assert paths.new.is_absolute()
        assert paths.set_dir.is_absolute()

    def test_lock_file_is_not_a_snapshot(self, tmp_path, clock):
        """Test that the lock file left behind is never selected."""
        manager = SnapshotManager(tmp_path, clock=clock)
        manager.prepare("web")
        assert all(p.is_dir() for p in manager.list_snapshots("web", True))

    @pytest.mark.parametrize("name", ["", "a/b", ".", ".."])
    def test_invalid_names(self, tmp_path, clock, name):
        """Test that unusable set names are rejected."""
        with pytest.raises(ConfigError):
            SnapshotManager(tmp_path, clock=clock).prepare(name)


class TestListSnapshots:
    """Tests for SnapshotManager.list_snapshots."""

    def test_missing_set(self, tmp_path):
        """Test that an unknown set has no snapshots."""
        assert SnapshotManager(tmp_path).list_snapshots("nothing") == []

    def test_sorted_oldest_first(self, tmp_path):
        """Test chronological order."""
        set_dir = tmp_path / "s"
        make_snapshot(set_dir, "2024-02-01T00:00:00+00:00")
        make_snapshot(set_dir, "2024-01-01T00:00:00+00:00")

        names = [p.name for p in SnapshotManager(tmp_path).list_snapshots("s")]

        assert names == ["2024-01-01T00:00:00+00:00", "2024-02-01T00:00:00+00:00"]

    def test_include_incomplete(self, tmp_path):
        """Test that incomplete snapshots can be listed."""
        set_dir = tmp_path / "s"
        make_snapshot(set_dir, "2024-01-01T00:00:00+00:00", complete=False)
        manager = SnapshotManager(tmp_path)

        assert manager.list_snapshots("s") == []
        assert len(manager.list_snapshots("s", include_incomplete=True)) == 1


class TestMarkComplete:
    """Tests for SnapshotManager.mark_complete."""

    def test_writes_marker(self, tmp_path, clock):
        """Test that the marker is created inside the snapshot."""
        manager = SnapshotManager(tmp_path, clock=clock)
        paths = manager.prepare("web")

        assert not manager.is_complete(paths.new)
        marker = manager.mark_complete(paths.new)

        assert marker == paths.new / COMPLETE_MARKER
        assert manager.is_complete(paths.new)
