"""Cross-source workflow chains: shell struggle -> AI help -> commit."""

from datetime import timedelta
from typing import Iterable, Optional, Sequence

from .models import (
    ConversationSession,
    CorrelationResult,
    StruggleSession,
    WorkflowAnalysis,
    WorkflowCycle,
    WorkflowPattern,
)


def _average(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def ai_helpfulness_rate(full_cycles: int, shell_to_ai: int) -> Optional[float]:
    """Share of struggle-triggered conversations that ended in a commit."""
    total = full_cycles + shell_to_ai
    if total == 0:
        return None
    return full_cycles / total


def _assign_conversations(
    struggles: list[StruggleSession],
    sessions: list[ConversationSession],
    workflow_gap: timedelta,
) -> dict[int, list[ConversationSession]]:
    """
    Give each conversation to the latest struggle ending at most `workflow_gap` before it starts.

    Keys are indexes into `struggles`, which must be sorted by (end, start).
    """
    assigned: dict[int, list[ConversationSession]] = {}
    for session in sessions:
        owner = None
        for idx, struggle in enumerate(struggles):
            if struggle.end > session.start:
                break
            if session.start <= struggle.end + workflow_gap:
                owner = idx
        if owner is not None:
            assigned.setdefault(owner, []).append(session)
    return assigned


def find_workflow_cycles(
    struggles: Iterable[StruggleSession],
    conversations: Iterable[ConversationSession],
    correlation: CorrelationResult,
    workflow_gap: timedelta,
    window: timedelta,
) -> tuple[list[WorkflowCycle], int]:
    """
    Link struggles, conversations and commits into workflow cycles.

    A conversation starting within `workflow_gap` after a struggle ends
    follows from that struggle; when several struggles qualify, the one
    that ended last owns it. Each struggle yields at most one cycle:
    - one of its conversations has a correlated commit -> FullCycle with
      the earliest such conversation (resolved by AI)
    - it has conversations but none led to a commit -> ShellToAI with
      the earliest one
    - no conversation, but a solo commit within `window` -> SoloResolution
    - otherwise the struggle is unresolved
    Conversations with commits that follow no struggle become AIToCommit.

    Returns (cycles ordered by trigger time, number of unresolved struggles).
    """
    sessions = sorted(conversations, key=lambda s: (s.start, s.end, s.id))
    ordered = sorted(struggles, key=lambda s: (s.end, s.start))
    solo_commits = correlation.solo_commits
    assigned = _assign_conversations(ordered, sessions, workflow_gap)
    cycles: list[WorkflowCycle] = []
    unresolved = 0

    for idx, struggle in enumerate(ordered):
        trigger = struggle.end
        followups = assigned.get(idx, [])

        helped = next((s for s in followups if correlation.session_commits.get(s.id)), None)
        if helped is not None:
            commit = correlation.session_commits[helped.id][0]
            cycles.append(WorkflowCycle(
                pattern=WorkflowPattern.FULL_CYCLE,
                trigger_time=trigger,
                resolution_time=commit.timestamp,
                resolved_by_ai=True,
                conversation_id=helped.id,
                commit_hash=commit.hash,
                struggle_start=struggle.start,
            ))
            continue

        if followups:
            cycles.append(WorkflowCycle(
                pattern=WorkflowPattern.SHELL_TO_AI,
                trigger_time=trigger,
                conversation_id=followups[0].id,
                struggle_start=struggle.start,
            ))
            continue

        solo = next((c for c in solo_commits if trigger <= c.timestamp <= trigger + window), None)
        if solo is not None:
            cycles.append(WorkflowCycle(
                pattern=WorkflowPattern.SOLO_RESOLUTION,
                trigger_time=trigger,
                resolution_time=solo.timestamp,
                commit_hash=solo.hash,
                struggle_start=struggle.start,
            ))
        else:
            unresolved += 1

    followed = {s.id for group in assigned.values() for s in group}
    for session in sessions:
        if session.id in followed:
            continue
        commits = correlation.session_commits.get(session.id, ())
        if commits:
            cycles.append(WorkflowCycle(
                pattern=WorkflowPattern.AI_TO_COMMIT,
                trigger_time=session.start,
                resolution_time=commits[0].timestamp,
                conversation_id=session.id,
                commit_hash=commits[0].hash,
            ))

    cycles.sort(key=lambda c: (c.trigger_time, c.pattern.value, c.conversation_id or '', c.commit_hash or ''))
    return cycles, unresolved


def correlate_workflows(
    struggles: Sequence[StruggleSession],
    conversations: Sequence[ConversationSession],
    correlation: CorrelationResult,
    workflow_gap: timedelta,
    window: timedelta,
) -> WorkflowAnalysis:
    """
    Detect workflow cycles and summarize how often AI help resolved a struggle.

    Resolution times are measured from the end of the struggle; FullCycle
    and SoloResolution averages are kept separate for comparison.
    """
    cycles, unresolved = find_workflow_cycles(struggles, conversations, correlation, workflow_gap, window)

    pattern_counts = {pattern.value: 0 for pattern in WorkflowPattern}
    for cycle in cycles:
        pattern_counts[cycle.pattern.value] += 1

    ai_minutes = [c.resolution_minutes for c in cycles if c.pattern == WorkflowPattern.FULL_CYCLE]
    solo_minutes = [c.resolution_minutes for c in cycles if c.pattern == WorkflowPattern.SOLO_RESOLUTION]

    return WorkflowAnalysis(
        cycles=tuple(cycles),
        pattern_counts=pattern_counts,
        ai_helpfulness_rate=ai_helpfulness_rate(
            pattern_counts[WorkflowPattern.FULL_CYCLE.value],
            pattern_counts[WorkflowPattern.SHELL_TO_AI.value],
        ),
        avg_ai_resolution_minutes=_average(ai_minutes),
        avg_solo_resolution_minutes=_average(solo_minutes),
        unresolved_struggles=unresolved,
    )
