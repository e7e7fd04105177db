"""End-to-end tests for analysis runs and report rendering."""

import json
import random
import pytest
from datetime import timedelta

from devflow.config import AnalysisConfig
from devflow.loader import load_commits, load_conversations, load_shell_commands
from devflow.models import Priority, WorkflowPattern
from devflow.report import analyze, format_report
from devflow.validate import InputError


@pytest.fixture
def fixture_inputs(commits_path, other_repo_commits_path, conversations_path, shell_path):
    """Commits from two repositories plus conversations and shell history."""
    commits = list(load_commits(commits_path)) + list(load_commits(other_repo_commits_path))
    conversations = list(load_conversations(conversations_path))
    shell = list(load_shell_commands(shell_path))
    return commits, conversations, shell


class TestAnalyze:
    """Tests for the full analysis pipeline over the fixture data."""

    def test_ai_impact(self, fixture_inputs):
        report = analyze(*fixture_inputs)
        ai = report.ai_impact

        # Shared commit between the two repositories is counted once
        assert ai.total_commits == 5
        assert ai.ai_commits == 2
        assert ai.solo_commits == 3
        assert ai.copy_paste_incidents == 1
        assert ai.session_types['LearningSession'] == 1
        assert ai.session_types['Collaboration'] == 1
        assert ai.ai_hours == pytest.approx(40 / 60)
        assert ai.velocity_improvement > 0
        assert [m.month for m in ai.learning_curve] == ['2026-01', '2026-02']

    def test_shell_analysis(self, fixture_inputs):
        shell = analyze(*fixture_inputs).shell_analysis

        assert shell.total_commands == 10
        assert shell.failed_commands == 6
        assert shell.failure_rate == pytest.approx(0.6)
        assert shell.struggle_session_count == 1
        struggle = shell.struggle_sessions[0]
        assert struggle.retries == 4
        assert struggle.dominant_error == 'npm install failure'
        assert struggle.resolved
        assert shell.shell_productivity_score == pytest.approx(69.5)

    def test_workflow(self, fixture_inputs):
        workflow = analyze(*fixture_inputs).workflow_correlation

        full = [c for c in workflow.cycles if c.pattern == WorkflowPattern.FULL_CYCLE]
        assert len(full) == 1
        assert full[0].conversation_id == 'conv-fix'
        assert full[0].resolution_minutes == pytest.approx(20)
        assert workflow.pattern_counts['AIToCommit'] == 1
        assert workflow.ai_helpfulness_rate == 1.0

    def test_score_and_recommendations(self, fixture_inputs):
        report = analyze(*fixture_inputs)

        assert report.productivity_score.overall == pytest.approx(90.05)
        assert report.productivity_score.grade == 'A+'
        assert [(r.priority, r.category) for r in report.recommendations] == [
            (Priority.HIGH, 'Shell Efficiency'),
        ]

    def test_warnings_collected(self, fixture_inputs):
        """The commit without a language breakdown is reported, not fatal."""
        report = analyze(*fixture_inputs)
        assert any('d4e5f6a1b2c3' in w for w in report.warnings)

    def test_order_independent(self, fixture_inputs):
        """Shuffled inputs produce an identical serialized report."""
        commits, conversations, shell = fixture_inputs
        expected = json.dumps(analyze(commits, conversations, shell).to_dict(), sort_keys=True)

        rng = random.Random(5)
        for _ in range(5):
            for stream in (commits, conversations, shell):
                rng.shuffle(stream)
            actual = json.dumps(analyze(commits, conversations, shell).to_dict(), sort_keys=True)
            assert actual == expected

    def test_config_changes_results(self, fixture_inputs):
        """A tighter threshold finds the short cargo build run too."""
        report = analyze(*fixture_inputs, config=AnalysisConfig(struggle_threshold=2))
        assert report.shell_analysis.struggle_session_count == 2

    def test_narrow_window(self, fixture_inputs):
        report = analyze(*fixture_inputs, config=AnalysisConfig(window=timedelta(minutes=1)))
        # Both AI-assisted commits land more than a minute after their conversation ends
        assert report.ai_impact.ai_commits == 0

    def test_empty_inputs(self):
        """Nothing to analyze still yields a complete, neutral report."""
        report = analyze([], [], [])

        assert report.ai_impact.total_commits == 0
        assert report.shell_analysis.failure_rate is None
        assert report.workflow_correlation.ai_helpfulness_rate is None
        assert report.productivity_score.overall == pytest.approx(65.0)

    def test_conflicting_duplicate_commit(self, fixture_inputs, make_commit):
        commits, conversations, shell = fixture_inputs
        clash = make_commit('a1b2c3d4e5f6', commits[0].timestamp, insertions=1)

        with pytest.raises(InputError):
            analyze(commits + [clash], conversations, shell)


class TestSerialization:
    """Tests for ProductivityReport.to_dict."""

    def test_json_shape(self, fixture_inputs):
        data = json.loads(json.dumps(analyze(*fixture_inputs).to_dict()))

        assert set(data) == {
            'productivity_score', 'ai_impact', 'shell_analysis',
            'workflow_correlation', 'recommendations', 'config', 'warnings',
        }
        assert data['productivity_score']['grade'] == 'A+'
        assert data['ai_impact']['copy_paste_incidents'] == 1
        assert data['shell_analysis']['struggle_session_count'] == 1
        assert data['recommendations'][0]['priority'] == 'High'
        assert data['config']['window_hours'] == 2.0

    def test_cycles_serialized_with_minutes(self, fixture_inputs):
        data = analyze(*fixture_inputs).to_dict()
        full = [c for c in data['workflow_correlation']['cycles'] if c['pattern'] == 'FullCycle']
        assert full[0]['resolution_minutes'] == 20.0
        assert full[0]['trigger_time'] == '2026-01-15T14:00:00+00:00'


class TestFormatReport:
    """Tests for format_report."""

    def test_sections(self, fixture_inputs):
        text = format_report(analyze(*fixture_inputs))

        assert text.startswith('Developer Productivity Report')
        assert 'Overall score: 90.0 (A+)' in text or 'Overall score: 90.1 (A+)' in text
        assert 'AI Impact' in text
        assert 'Shell Analysis' in text
        assert 'Workflow Correlation' in text
        assert 'Recommendations (1)' in text
        assert '[High] Shell Efficiency' in text

    def test_no_recommendations(self):
        text = format_report(analyze([], [], []))
        assert 'No recommendations - keep it up!' in text
        assert 'Failure rate: n/a' in text
