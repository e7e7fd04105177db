"""Tests for cross-source workflow cycle detection."""

import pytest
from datetime import datetime, timedelta, timezone

from devflow.correlate import correlate
from devflow.models import StruggleSession, WorkflowPattern
from devflow.workflow import ai_helpfulness_rate, correlate_workflows


T0 = datetime(2026, 1, 15, tzinfo=timezone.utc)
WINDOW = timedelta(hours=2)
WORKFLOW_GAP = timedelta(minutes=30)


def at(hhmm: str) -> datetime:
    hours, minutes = hhmm.split(':')
    return T0 + timedelta(hours=int(hours), minutes=int(minutes))


def struggle(start: str, end: str) -> StruggleSession:
    return StruggleSession(start=at(start), end=at(end), retries=4, dominant_error='npm install failure', resolved=True)


def run(struggles, sessions, commits):
    correlation = correlate(commits, sessions, WINDOW)
    return correlate_workflows(struggles, sessions, correlation, WORKFLOW_GAP, WINDOW)


class TestCorrelateWorkflows:
    """Tests for correlate_workflows."""

    def test_full_cycle(self, make_session, make_commit):
        """Struggle, then a conversation five minutes later, then a commit."""
        analysis = run(
            [struggle('13:52', '14:00')],
            [make_session('conv', at('14:05'), at('14:15'))],
            [make_commit('fix', at('14:20'))],
        )

        assert len(analysis.cycles) == 1
        cycle = analysis.cycles[0]
        assert cycle.pattern == WorkflowPattern.FULL_CYCLE
        assert cycle.resolved_by_ai is True
        assert cycle.conversation_id == 'conv'
        assert cycle.commit_hash == 'fix'
        assert cycle.resolution_minutes == pytest.approx(20)
        assert cycle.total_minutes == pytest.approx(28)
        assert analysis.ai_helpfulness_rate == 1.0
        assert analysis.avg_ai_resolution_minutes == pytest.approx(20)

    def test_shell_to_ai_without_commit(self, make_session):
        analysis = run(
            [struggle('13:52', '14:00')],
            [make_session('conv', at('14:05'), at('14:15'))],
            [],
        )

        assert [c.pattern for c in analysis.cycles] == [WorkflowPattern.SHELL_TO_AI]
        assert analysis.cycles[0].resolution_time is None
        assert analysis.ai_helpfulness_rate == 0.0

    def test_conversation_too_late(self, make_session, make_commit):
        """A conversation outside the workflow gap is unrelated to the struggle."""
        analysis = run(
            [struggle('13:52', '14:00')],
            [make_session('conv', at('14:31'), at('14:40'))],
            [make_commit('c', at('14:45'))],
        )

        patterns = [c.pattern for c in analysis.cycles]
        assert WorkflowPattern.FULL_CYCLE not in patterns
        assert WorkflowPattern.AI_TO_COMMIT in patterns

    def test_conversation_at_gap_boundary(self, make_session):
        analysis = run(
            [struggle('13:52', '14:00')],
            [make_session('conv', at('14:30'), at('14:40'))],
            [],
        )
        assert analysis.pattern_counts['ShellToAI'] == 1

    def test_solo_resolution(self, make_commit):
        analysis = run([struggle('13:52', '14:00')], [], [make_commit('solo', at('14:40'))])

        cycle = analysis.cycles[0]
        assert cycle.pattern == WorkflowPattern.SOLO_RESOLUTION
        assert cycle.resolved_by_ai is False
        assert cycle.resolution_minutes == pytest.approx(40)
        assert analysis.avg_solo_resolution_minutes == pytest.approx(40)
        assert analysis.ai_helpfulness_rate is None

    def test_unresolved_struggle(self, make_commit):
        """No conversation and no commit within the window."""
        analysis = run([struggle('13:52', '14:00')], [], [make_commit('late', at('16:01'))])

        assert analysis.cycles == ()
        assert analysis.unresolved_struggles == 1

    def test_ai_to_commit(self, make_session, make_commit):
        analysis = run([], [make_session('conv', at('10:00'), at('10:30'))], [make_commit('c', at('10:33'))])

        cycle = analysis.cycles[0]
        assert cycle.pattern == WorkflowPattern.AI_TO_COMMIT
        assert cycle.resolved_by_ai is False
        assert cycle.trigger_time == at('10:00')

    def test_nearest_struggle_owns_conversation(self, make_session, make_commit):
        """A conversation follows the struggle that ended most recently before it."""
        analysis = run(
            [struggle('13:40', '13:50'), struggle('13:55', '14:00')],
            [make_session('conv', at('14:05'), at('14:15'))],
            [make_commit('fix', at('14:20'))],
        )

        full = [c for c in analysis.cycles if c.pattern == WorkflowPattern.FULL_CYCLE]
        assert len(full) == 1
        assert full[0].trigger_time == at('14:00')
        assert full[0].struggle_start == at('13:55')
        assert analysis.unresolved_struggles == 1

    def test_later_conversation_completes_cycle(self, make_session, make_commit):
        """A quick question without a commit does not hide the conversation that fixed it."""
        analysis = run(
            [struggle('10:00', '10:10')],
            [
                make_session('quick', at('10:12'), at('10:14')),
                make_session('fix', at('10:15'), at('10:25')),
            ],
            [make_commit('c', at('10:26'))],
        )

        assert len(analysis.cycles) == 1
        cycle = analysis.cycles[0]
        assert cycle.pattern == WorkflowPattern.FULL_CYCLE
        assert cycle.conversation_id == 'fix'
        assert cycle.resolution_minutes == pytest.approx(16)
        assert analysis.pattern_counts['AIToCommit'] == 0
        assert analysis.pattern_counts['ShellToAI'] == 0
        assert analysis.ai_helpfulness_rate == 1.0

    def test_followup_conversations_without_commit(self, make_session):
        """Several conversations after one struggle still count as one ShellToAI."""
        analysis = run(
            [struggle('10:00', '10:10')],
            [
                make_session('first', at('10:12'), at('10:14')),
                make_session('second', at('10:20'), at('10:25')),
            ],
            [],
        )

        assert [c.conversation_id for c in analysis.cycles] == ['first']
        assert analysis.pattern_counts['ShellToAI'] == 1

    def test_all_patterns_counted(self):
        analysis = run([], [], [])
        assert analysis.pattern_counts == {
            'FullCycle': 0,
            'ShellToAI': 0,
            'AIToCommit': 0,
            'SoloResolution': 0,
        }
        assert analysis.avg_ai_resolution_minutes is None


class TestHelpfulnessRate:
    """Tests for ai_helpfulness_rate."""

    def test_undefined_without_struggle_conversations(self):
        assert ai_helpfulness_rate(0, 0) is None

    def test_ratio(self):
        assert ai_helpfulness_rate(3, 1) == pytest.approx(0.75)
