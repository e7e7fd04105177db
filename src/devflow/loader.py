"""JSONL loader for normalized commit, conversation and shell records."""

from pathlib import Path
from typing import Iterator, Optional
from datetime import datetime, timezone
import json
import sys

from .models import CommitRecord, ConversationSession, ShellCommandRecord
from .validate import InputError


def parse_jsonl(path: Path) -> Iterator[tuple[int, dict]]:
    """
    Stream parse a JSONL file, yielding (line number, record).

    Handles malformed lines by skipping them with a warning to stderr.
    Memory-efficient: processes line-by-line without loading entire file.
    """
    with open(path, 'r', encoding='utf-8') as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                # Only log error type and location, not the content
                print(f"Warning: Skipping malformed JSON at {path}:{line_num} ({type(e).__name__})", file=sys.stderr)
                continue
            if not isinstance(record, dict):
                print(f"Warning: Skipping non-object record at {path}:{line_num}", file=sys.stderr)
                continue
            yield line_num, record


def _parse_timestamp(value, where: str) -> datetime:
    """
    Parse a timestamp value.

    Handles ISO 8601 strings (with optional Z suffix) and Unix milliseconds.
    """
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise InputError(f"{where}: invalid timestamp {value!r}")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InputError(f"{where}: timestamp out of range ({value})")
    raise InputError(f"{where}: missing or invalid timestamp")


def _require(record: dict, key: str, where: str):
    if key not in record or record[key] is None:
        raise InputError(f"{where}: missing required field '{key}'")
    return record[key]


def _optional_int(record: dict, key: str, where: str, default: int = 0) -> int:
    value = record.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputError(f"{where}: field '{key}' must be a number")
    return int(value)


def _language_breakdown(record: dict, where: str) -> Optional[dict[str, int]]:
    breakdown = record.get('language_breakdown')
    if breakdown is None:
        return None
    if not isinstance(breakdown, dict):
        raise InputError(f"{where}: language_breakdown must be an object")

    lines = {}
    for language, count in breakdown.items():
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise InputError(f"{where}: language_breakdown[{language!r}] must be a number")
        lines[str(language)] = int(count)
    return lines


def load_commits(path: Path, repository: Optional[str] = None) -> Iterator[CommitRecord]:
    """
    Load commit records from a JSONL file.

    Args:
        path: File with one commit object per line
        repository: Label applied to commits that do not carry one
            (defaults to the file stem)
    """
    label = repository if repository is not None else path.stem

    for line_num, record in parse_jsonl(path):
        where = f"{path}:{line_num}"
        yield CommitRecord(
            hash=str(_require(record, 'hash', where)),
            timestamp=_parse_timestamp(record.get('timestamp'), where),
            insertions=_optional_int(record, 'insertions', where),
            deletions=_optional_int(record, 'deletions', where),
            files_changed=_optional_int(record, 'files_changed', where),
            language_breakdown=_language_breakdown(record, where),
            repository=record.get('repository') or label,
        )


def load_conversations(path: Path) -> Iterator[ConversationSession]:
    """Load conversation sessions from a JSONL file."""
    for line_num, record in parse_jsonl(path):
        where = f"{path}:{line_num}"
        files = record.get('files_touched')
        if files is not None and not isinstance(files, list):
            raise InputError(f"{where}: files_touched must be a list")

        yield ConversationSession(
            id=str(_require(record, 'id', where)),
            tool=str(record.get('tool') or 'unknown'),
            start=_parse_timestamp(record.get('start'), where),
            end=_parse_timestamp(record.get('end'), where),
            message_count=_optional_int(record, 'message_count', where),
            tool_use_count=_optional_int(record, 'tool_use_count', where),
            files_touched=frozenset(str(f) for f in files) if files is not None else None,
        )


def load_shell_commands(path: Path) -> Iterator[ShellCommandRecord]:
    """Load shell command records from a JSONL file."""
    for line_num, record in parse_jsonl(path):
        where = f"{path}:{line_num}"
        duration = record.get('duration_seconds', 0.0)
        if duration is None:
            duration = 0.0
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            raise InputError(f"{where}: field 'duration_seconds' must be a number")

        yield ShellCommandRecord(
            timestamp=_parse_timestamp(record.get('timestamp'), where),
            command=str(_require(record, 'command', where)),
            exit_code=_optional_int(record, 'exit_code', where),
            duration_seconds=float(duration),
        )
