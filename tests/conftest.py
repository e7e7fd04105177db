"""Pytest fixtures for devflow tests."""

import pytest
from pathlib import Path
import tempfile
import shutil

from devflow.models import CommitRecord, ConversationSession, ShellCommandRecord


@pytest.fixture
def make_commit():
    """Factory for CommitRecord with sensible defaults."""
    def _make(hash, timestamp, insertions=10, deletions=0, files_changed=1,
              language_breakdown=None, repository=None):
        if language_breakdown is None:
            language_breakdown = {'Python': insertions + deletions}
        return CommitRecord(
            hash=hash,
            timestamp=timestamp,
            insertions=insertions,
            deletions=deletions,
            files_changed=files_changed,
            language_breakdown=language_breakdown,
            repository=repository,
        )
    return _make


@pytest.fixture
def make_session():
    """Factory for ConversationSession with sensible defaults."""
    def _make(id, start, end, tool='claude-code', message_count=10, tool_use_count=0,
              files_touched=frozenset()):
        return ConversationSession(
            id=id,
            tool=tool,
            start=start,
            end=end,
            message_count=message_count,
            tool_use_count=tool_use_count,
            files_touched=files_touched,
        )
    return _make


@pytest.fixture
def make_command():
    """Factory for ShellCommandRecord."""
    def _make(timestamp, command='ls', exit_code=0, duration_seconds=1.0):
        return ShellCommandRecord(
            timestamp=timestamp,
            command=command,
            exit_code=exit_code,
            duration_seconds=duration_seconds,
        )
    return _make


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / 'fixtures'


@pytest.fixture
def commits_path(fixtures_dir) -> Path:
    """Commits from the main repository."""
    return fixtures_dir / 'commits.jsonl'


@pytest.fixture
def other_repo_commits_path(fixtures_dir) -> Path:
    """Commits from a second repository (shares one commit with the main repo)."""
    return fixtures_dir / 'commits_other_repo.jsonl'


@pytest.fixture
def conversations_path(fixtures_dir) -> Path:
    return fixtures_dir / 'conversations.jsonl'


@pytest.fixture
def shell_path(fixtures_dir) -> Path:
    return fixtures_dir / 'shell.jsonl'


@pytest.fixture
def malformed_path(fixtures_dir) -> Path:
    """Shell history with one line of broken JSON."""
    return fixtures_dir / 'malformed.jsonl'


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep a real ~/.devflow/config.json from leaking into tests."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setattr(Path, 'home', lambda: home)
    return home
