"""Validation and UTC normalization of input records."""

import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from .models import CommitRecord, ConversationSession, ShellCommandRecord


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InputError(ValueError):
    """A record is malformed badly enough that the run cannot continue."""


def to_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    Naive timestamps are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_timestamp(value, what: str) -> datetime:
    if not isinstance(value, datetime):
        raise InputError(f"{what}: timestamp is not a datetime ({value!r})")
    normalized = to_utc(value)
    if normalized < EPOCH:
        raise InputError(f"{what}: timestamp {normalized.isoformat()} is before the Unix epoch")
    return normalized


def _check_non_negative(value, field_name: str, what: str):
    if value is None or value < 0:
        raise InputError(f"{what}: {field_name} must be non-negative, got {value!r}")


def _warn(warnings: list[str], message: str):
    # Only identifiers go into the message, never record content
    print(f"Warning: {message}", file=sys.stderr)
    warnings.append(message)


def validate_conversation(session: ConversationSession, warnings: list[str]) -> ConversationSession:
    what = f"conversation {session.id!r}"
    start = _check_timestamp(session.start, what)
    end = _check_timestamp(session.end, what)
    if end < start:
        raise InputError(f"{what}: end {end.isoformat()} is before start {start.isoformat()}")
    _check_non_negative(session.message_count, 'message_count', what)
    _check_non_negative(session.tool_use_count, 'tool_use_count', what)

    files_touched = session.files_touched
    if files_touched is None:
        _warn(warnings, f"{what} has no files_touched, defaulting to empty")
        files_touched = frozenset()

    return replace(session, start=start, end=end, files_touched=frozenset(files_touched))


def validate_commit(commit: CommitRecord, warnings: list[str]) -> CommitRecord:
    what = f"commit {commit.hash!r}"
    if not commit.hash:
        raise InputError("commit with empty hash")
    timestamp = _check_timestamp(commit.timestamp, what)
    _check_non_negative(commit.insertions, 'insertions', what)
    _check_non_negative(commit.deletions, 'deletions', what)
    _check_non_negative(commit.files_changed, 'files_changed', what)

    language_breakdown = commit.language_breakdown
    if language_breakdown is None:
        _warn(warnings, f"{what} has no language_breakdown, defaulting to empty")
        language_breakdown = {}

    return replace(commit, timestamp=timestamp, language_breakdown=dict(language_breakdown))


def validate_shell_command(command: ShellCommandRecord, index: int) -> ShellCommandRecord:
    what = f"shell command #{index}"
    timestamp = _check_timestamp(command.timestamp, what)
    _check_non_negative(command.duration_seconds, 'duration_seconds', what)
    return replace(command, timestamp=timestamp)


def normalize_inputs(
    commits: Iterable[CommitRecord],
    conversations: Iterable[ConversationSession],
    shell_commands: Iterable[ShellCommandRecord],
) -> tuple[list[CommitRecord], list[ConversationSession], list[ShellCommandRecord], list[str]]:
    """
    Validate every record and normalize timestamps to UTC.

    Returns (commits, conversations, shell_commands, warnings). Missing optional
    fields are defaulted and reported as warnings; anything else that is wrong
    raises InputError naming the offending record.
    """
    warnings: list[str] = []

    valid_commits = [validate_commit(c, warnings) for c in commits]
    valid_conversations = [validate_conversation(s, warnings) for s in conversations]
    valid_shell = [validate_shell_command(cmd, i) for i, cmd in enumerate(shell_commands)]

    seen_ids: set[str] = set()
    for session in valid_conversations:
        if session.id in seen_ids:
            raise InputError(f"conversation {session.id!r}: duplicate id")
        seen_ids.add(session.id)

    return valid_commits, valid_conversations, valid_shell, sorted(set(warnings))
