"""Session-type classification of conversations and their commits."""

from datetime import timedelta
from typing import Callable, Iterable, Sequence

from .models import (
    CommitRecord,
    ConversationSession,
    CorrelationResult,
    PairProgrammingSession,
    SessionType,
)


# Rule thresholds
COPY_PASTE_MAX_DELAY = timedelta(minutes=5)
COPY_PASTE_MIN_LINES = 50
REFACTOR_MIN_DELETION_RATIO = 0.30
REFACTOR_MIN_LINES = 100
INTENSE_MIN_COMMITS = 3
INTENSE_MIN_TOOL_USES = 5
QUICK_FIX_MAX_DURATION = timedelta(minutes=10)


def is_copy_paste(session: ConversationSession, commits: Sequence[CommitRecord]) -> bool:
    """A single large commit landing right after the conversation ended."""
    if len(commits) != 1:
        return False
    commit = commits[0]
    return (
        commit.timestamp - session.end < COPY_PASTE_MAX_DELAY
        and commit.lines_changed > COPY_PASTE_MIN_LINES
    )


def is_guided_refactor(session: ConversationSession, commits: Sequence[CommitRecord]) -> bool:
    total_lines = sum(c.lines_changed for c in commits)
    total_deletions = sum(c.deletions for c in commits)
    return (
        total_lines > REFACTOR_MIN_LINES
        and total_deletions > REFACTOR_MIN_DELETION_RATIO * total_lines
    )


def is_intense_collaboration(session: ConversationSession, commits: Sequence[CommitRecord]) -> bool:
    return len(commits) >= INTENSE_MIN_COMMITS and session.tool_use_count >= INTENSE_MIN_TOOL_USES


def is_quick_fix(session: ConversationSession, commits: Sequence[CommitRecord]) -> bool:
    return len(commits) == 1 and session.end - session.start < QUICK_FIX_MAX_DURATION


def is_learning(session: ConversationSession, commits: Sequence[CommitRecord]) -> bool:
    return len(commits) == 0


# Evaluated in order, first match wins. Collaboration is the fallback.
CLASSIFICATION_RULES: list[tuple[SessionType, Callable[[ConversationSession, Sequence[CommitRecord]], bool]]] = [
    (SessionType.COPY_PASTE, is_copy_paste),
    (SessionType.GUIDED_REFACTOR, is_guided_refactor),
    (SessionType.INTENSE_COLLABORATION, is_intense_collaboration),
    (SessionType.QUICK_FIX, is_quick_fix),
    (SessionType.LEARNING, is_learning),
]


def classify_session(session: ConversationSession, commits: Sequence[CommitRecord]) -> SessionType:
    """
    Assign exactly one session type to a conversation and its correlated commits.

    Pure function of its inputs.
    """
    for session_type, matches in CLASSIFICATION_RULES:
        if matches(session, commits):
            return session_type
    return SessionType.COLLABORATION


def classify_all(
    correlation: CorrelationResult,
    conversations: Iterable[ConversationSession],
) -> dict[str, SessionType]:
    """Classify every conversation, keyed by conversation id."""
    return {
        session.id: classify_session(session, correlation.session_commits.get(session.id, ()))
        for session in conversations
    }


def build_pair_sessions(
    correlation: CorrelationResult,
    conversations: Iterable[ConversationSession],
) -> list[PairProgrammingSession]:
    """
    Build a PairProgrammingSession for each conversation with correlated commits.

    Returned in conversation start order.
    """
    pair_sessions = []

    for session in sorted(conversations, key=lambda s: (s.start, s.end, s.id)):
        commits = correlation.session_commits.get(session.id, ())
        if not commits:
            continue
        pair_sessions.append(PairProgrammingSession(
            conversation_id=session.id,
            tool=session.tool,
            commits=tuple(commits),
            session_type=classify_session(session, commits),
            lines_changed=sum(c.lines_changed for c in commits),
            files_changed=sum(c.files_changed for c in commits),
        ))

    return pair_sessions


def count_session_types(session_types: dict[str, SessionType]) -> dict[str, int]:
    """
    Count conversations per session type.

    Every type is present (zero when unused), so the counts partition the
    conversation set.
    """
    counts = {session_type.value: 0 for session_type in SessionType}
    for session_type in session_types.values():
        counts[session_type.value] += 1
    return counts
