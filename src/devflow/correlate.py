"""Time-window correlation of commits to AI conversation sessions."""

from bisect import bisect_right
from dataclasses import replace
from datetime import timedelta
from typing import Iterable, Optional

from .models import CommitRecord, ConversationSession, CorrelationResult
from .validate import InputError


def commit_sort_key(commit: CommitRecord):
    """Equal-timestamp commits are ordered by hash."""
    return (commit.timestamp, commit.hash)


def merge_commits(*streams: Iterable[CommitRecord]) -> list[CommitRecord]:
    """
    Merge per-repository commit streams into one ordered list.

    The same commit reachable from several repositories (forks, mirrors)
    collapses to a single record. Two records sharing a hash but differing
    in content raise InputError.
    """
    merged: dict[str, CommitRecord] = {}

    for stream in streams:
        for commit in stream:
            existing = merged.get(commit.hash)
            if existing is None:
                merged[commit.hash] = commit
                continue
            if replace(existing, repository=None) != replace(commit, repository=None):
                raise InputError(f"commit {commit.hash!r}: duplicate hash with different content")
            # Keep the lexically smallest repository label so merge order does not matter
            if (commit.repository or '') < (existing.repository or ''):
                merged[commit.hash] = commit

    return sorted(merged.values(), key=commit_sort_key)


def _session_sort_key(session: ConversationSession):
    return (session.start, session.end, session.id)


def find_session(
    commit: CommitRecord,
    sessions: list[ConversationSession],
    starts: list,
    window: timedelta,
    max_span: timedelta,
) -> Optional[ConversationSession]:
    """
    Pick the conversation a commit belongs to.

    A session is a candidate when start <= commit.timestamp <= end + window.
    The latest start wins, then the earliest end, then the smallest id.
    `sessions` must be sorted by (start, end, id) and `starts` hold their starts.
    """
    ts = commit.timestamp
    # Sessions starting before this point cannot reach ts even with the window
    horizon = ts - max_span - window

    best: Optional[ConversationSession] = None
    idx = bisect_right(starts, ts) - 1
    while idx >= 0:
        session = sessions[idx]
        if session.start < horizon:
            break
        if best is not None and session.start < best.start:
            break
        if ts <= session.end + window:
            # Walking backwards through equal starts visits larger (end, id) first
            best = session
        idx -= 1

    return best


def correlate(
    commits: Iterable[CommitRecord],
    conversations: Iterable[ConversationSession],
    window: timedelta,
) -> CorrelationResult:
    """
    Join commits to conversations inside the correlation window.

    Input order does not matter: both streams are sorted before matching.
    """
    if window <= timedelta(0):
        raise ValueError(f"Correlation window must be positive, got {window}")

    sessions = sorted(conversations, key=_session_sort_key)
    starts = [s.start for s in sessions]
    max_span = max((s.end - s.start for s in sessions), default=timedelta(0))

    commit_sessions: dict[str, Optional[str]] = {}
    grouped: dict[str, list[CommitRecord]] = {s.id: [] for s in sessions}
    ai_commits: list[CommitRecord] = []
    solo_commits: list[CommitRecord] = []

    for commit in sorted(commits, key=commit_sort_key):
        session = find_session(commit, sessions, starts, window, max_span)
        if session is None:
            commit_sessions[commit.hash] = None
            solo_commits.append(commit)
        else:
            commit_sessions[commit.hash] = session.id
            grouped[session.id].append(commit)
            ai_commits.append(commit)

    return CorrelationResult(
        commit_sessions=commit_sessions,
        session_commits={sid: tuple(group) for sid, group in grouped.items()},
        ai_commits=tuple(ai_commits),
        solo_commits=tuple(solo_commits),
    )
