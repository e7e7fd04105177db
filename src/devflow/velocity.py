"""AI vs. solo velocity, code volume, and learning-curve statistics."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from .models import (
    AIImpact,
    CommitRecord,
    ConversationSession,
    CorrelationResult,
    LanguageShare,
    MonthlyDependency,
)
from .classify import build_pair_sessions, classify_all, count_session_types


def merge_intervals(intervals: Iterable[tuple[datetime, datetime]]) -> list[tuple[datetime, datetime]]:
    """Merge overlapping or touching [start, end] intervals."""
    merged: list[tuple[datetime, datetime]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def active_hours(sessions: Iterable[ConversationSession]) -> float:
    """Hours covered by the union of the sessions' time spans."""
    total = sum(
        ((end - start) for start, end in merge_intervals((s.start, s.end) for s in sessions)),
        timedelta(0),
    )
    return total.total_seconds() / 3600


def compute_ai_velocity(ai_commit_count: int, hours: float) -> Optional[float]:
    """AI-assisted commits per hour of correlated conversation time."""
    if hours <= 0:
        return None
    return ai_commit_count / hours


def compute_solo_velocity(solo_commits: Sequence[CommitRecord]) -> Optional[float]:
    """
    Solo commits per hour across the span of solo activity.

    Undefined (None) with fewer than two solo commits or a zero span.
    """
    if len(solo_commits) < 2:
        return None
    timestamps = [c.timestamp for c in solo_commits]
    span_hours = (max(timestamps) - min(timestamps)).total_seconds() / 3600
    if span_hours <= 0:
        return None
    return len(solo_commits) / span_hours


def compute_velocity_improvement(ai_velocity: Optional[float], solo_velocity: Optional[float]) -> Optional[float]:
    """Percentage change of AI velocity over solo velocity, None when undefined."""
    if ai_velocity is None or solo_velocity is None or solo_velocity <= 0:
        return None
    return (ai_velocity - solo_velocity) / solo_velocity * 100


def _average_files(commits: Sequence[CommitRecord]) -> Optional[float]:
    if not commits:
        return None
    return sum(c.files_changed for c in commits) / len(commits)


def build_learning_curve(
    commits: Iterable[CommitRecord],
    commit_sessions: dict[str, Optional[str]],
) -> tuple[MonthlyDependency, ...]:
    """
    Bucket commits by UTC calendar month into AI-assisted share per month.

    Built as a single fold over the time-ordered commits into an accumulator
    keyed by YYYY-MM.
    """
    buckets: dict[str, tuple[int, int]] = {}
    for commit in sorted(commits, key=lambda c: (c.timestamp, c.hash)):
        month = commit.timestamp.strftime('%Y-%m')
        ai, total = buckets.get(month, (0, 0))
        assisted = 1 if commit_sessions.get(commit.hash) is not None else 0
        buckets[month] = (ai + assisted, total + 1)

    return tuple(
        MonthlyDependency(month=month, ai_commits=ai, total_commits=total)
        for month, (ai, total) in sorted(buckets.items())
    )


def build_language_share(
    ai_commits: Iterable[CommitRecord],
    solo_commits: Iterable[CommitRecord],
) -> tuple[LanguageShare, ...]:
    """Lines per language split between AI-assisted and solo commits."""
    ai_lines: Counter = Counter()
    solo_lines: Counter = Counter()

    for commit in ai_commits:
        ai_lines.update(commit.language_breakdown or {})
    for commit in solo_commits:
        solo_lines.update(commit.language_breakdown or {})

    shares = [
        LanguageShare(language=lang, ai_lines=ai_lines[lang], solo_lines=solo_lines[lang])
        for lang in set(ai_lines) | set(solo_lines)
    ]
    shares.sort(key=lambda s: (-(s.ai_lines + s.solo_lines), s.language))
    return tuple(shares)


def compute_ai_impact(
    correlation: CorrelationResult,
    conversations: Sequence[ConversationSession],
) -> AIImpact:
    """
    Compute velocity, code volume and collaboration statistics.

    Metrics that cannot be computed from the available data are None rather
    than zero.
    """
    ai_commits = correlation.ai_commits
    solo_commits = correlation.solo_commits

    correlated_sessions = sorted(
        (s for s in conversations if correlation.session_commits.get(s.id)),
        key=lambda s: (s.start, s.end, s.id),
    )
    ai_hours = active_hours(correlated_sessions)

    ai_velocity = compute_ai_velocity(len(ai_commits), ai_hours)
    solo_velocity = compute_solo_velocity(solo_commits)
    velocity_improvement = compute_velocity_improvement(ai_velocity, solo_velocity)

    ai_lines = sum(c.lines_changed for c in ai_commits)
    solo_lines = sum(c.lines_changed for c in solo_commits)
    total_lines = ai_lines + solo_lines
    ai_code_percentage = ai_lines / total_lines * 100 if total_lines > 0 else None

    session_types = count_session_types(classify_all(correlation, conversations))
    pair_sessions = build_pair_sessions(correlation, conversations)
    sessions_by_tool = dict(sorted(Counter(p.tool for p in pair_sessions).items()))

    average_session_minutes = None
    if correlated_sessions:
        average_session_minutes = sum(s.duration_minutes for s in correlated_sessions) / len(correlated_sessions)

    return AIImpact(
        ai_commits=len(ai_commits),
        solo_commits=len(solo_commits),
        ai_hours=ai_hours,
        ai_velocity=ai_velocity,
        solo_velocity=solo_velocity,
        velocity_improvement=velocity_improvement,
        ai_lines=ai_lines,
        solo_lines=solo_lines,
        ai_code_percentage=ai_code_percentage,
        pair_programming_sessions=len(pair_sessions),
        session_types=session_types,
        avg_files_per_ai_commit=_average_files(ai_commits),
        avg_files_per_solo_commit=_average_files(solo_commits),
        average_session_minutes=average_session_minutes,
        sessions_by_tool=sessions_by_tool,
        learning_curve=build_learning_curve(ai_commits + solo_commits, correlation.commit_sessions),
        language_share=build_language_share(ai_commits, solo_commits),
    )
