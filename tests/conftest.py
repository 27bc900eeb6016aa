"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from remotely.config.schema import RemotelyConfig
from remotely.runner import CommandRunner, RunResult
from remotely.sshutil.master import ConnectionContext


class FakeRunner(CommandRunner):
    """Records commands instead of running them.

    ``results`` maps the program name (first argument) to a RunResult or a
    callable taking the argument list and returning one.
    """

    def __init__(self, results=None):
        self.calls = []
        self.results = dict(results or {})

    def run(self, args, *, env=None, capture=False, cwd=None):
        args = [str(a) for a in args]
        self.calls.append({"args": args, "env": env, "capture": capture})
        result = self.results.get(args[0], RunResult(0))
        if callable(result):
            result = result(args)
        return result

    def commands(self, program=None):
        return [
            c["args"] for c in self.calls if program is None or c["args"][0] == program
        ]


class FakeClock:
    """Returns a fixed time, advanced explicitly by the test."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 6, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def runner():
    """A FakeRunner where every command succeeds."""
    return FakeRunner()


@pytest.fixture
def clock():
    """A FakeClock starting at 2024-06-01T00:00:00+00:00."""
    return FakeClock()


@pytest.fixture
def connection(runner, tmp_path):
    """A ConnectionContext backed by the fake runner."""
    return ConnectionContext(
        "backup@example.com",
        ssh_options=["-p", "2222"],
        persist=300,
        control_dir=str(tmp_path / "control"),
        runner=runner,
    )


@pytest.fixture
def files_dir(tmp_path):
    """An empty local files directory."""
    path = tmp_path / "files"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, files_dir):
    """A complete configuration pointing into tmp_path."""
    return RemotelyConfig(
        host="backup@example.com",
        files_dir=files_dir,
        backup_dir=tmp_path / "backups",
        control_dir=tmp_path / "control",
    )


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
host = "root@web1.example.com"
ssh_options = ["-p", "2222"]
connection_timeout = 600
files_dir = "/srv/deploy/files"
backup_dir = "/srv/backups"

[rsync]
upload_options = ["-rtp"]
download_options = "-a --info=progress2"
"""


@pytest.fixture
def config_file(tmp_path, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path
