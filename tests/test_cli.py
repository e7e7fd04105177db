"""Tests for CLI commands."""

import json
import pytest
from click.testing import CliRunner

from devflow.cli import main


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


class TestAnalyzeCommand:
    """Tests for analyze command."""

    def test_analyze_text(self, runner, commits_path, other_repo_commits_path, conversations_path, shell_path):
        """Full analysis prints the text report."""
        result = runner.invoke(main, [
            'analyze',
            '--commits', str(commits_path),
            '--commits', str(other_repo_commits_path),
            '--conversations', str(conversations_path),
            '--shell', str(shell_path),
        ])

        assert result.exit_code == 0
        assert 'Developer Productivity Report' in result.output
        assert '(A+)' in result.output
        assert 'Recommendations (1)' in result.output

    def test_analyze_json(self, runner, conversations_path, shell_path):
        """Without commits the struggle-triggered conversation stays ShellToAI."""
        result = runner.invoke(main, [
            'analyze',
            '--conversations', str(conversations_path),
            '--shell', str(shell_path),
            '--format', 'json',
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['shell_analysis']['struggle_session_count'] == 1
        assert data['workflow_correlation']['pattern_counts']['ShellToAI'] == 1

    def test_analyze_shell_only(self, runner, shell_path):
        """Any single source is enough to run."""
        result = runner.invoke(main, ['analyze', '--shell', str(shell_path)])

        assert result.exit_code == 0
        assert 'Struggle sessions: 1' in result.output

    def test_analyze_output_file(self, runner, shell_path, temp_dir):
        output = temp_dir / 'reports' / 'report.json'
        result = runner.invoke(main, [
            'analyze',
            '--shell', str(shell_path),
            '--format', 'json',
            '--output', str(output),
        ])

        assert result.exit_code == 0
        assert 'Wrote report to' in result.output
        assert json.loads(output.read_text())['config']['struggle_threshold'] == 3

    def test_analyze_no_inputs(self, runner):
        result = runner.invoke(main, ['analyze'])

        assert result.exit_code == 1
        assert 'Must specify at least one' in result.output

    def test_analyze_missing_file(self, runner, temp_dir):
        result = runner.invoke(main, ['analyze', '--shell', str(temp_dir / 'nope.jsonl')])

        assert result.exit_code == 1
        assert 'not found' in result.output.lower()

    def test_analyze_invalid_record(self, runner, temp_dir):
        """A malformed record aborts with the offending location."""
        bad = temp_dir / 'bad.jsonl'
        bad.write_text('{"hash": "abc", "timestamp": "not-a-time"}\n')

        result = runner.invoke(main, ['analyze', '--commits', str(bad)])

        assert result.exit_code == 1
        assert 'Error:' in result.output
        assert 'bad.jsonl:1' in result.output

    def test_analyze_bad_language_breakdown(self, runner, temp_dir):
        bad = temp_dir / 'bad.jsonl'
        bad.write_text('{"hash": "abc", "timestamp": "2026-01-15T10:00:00Z", "language_breakdown": {"Go": null}}\n')

        result = runner.invoke(main, ['analyze', '--commits', str(bad)])

        assert result.exit_code == 1
        assert 'Error:' in result.output
        assert 'bad.jsonl:1' in result.output

    def test_analyze_threshold_option(self, runner, shell_path):
        result = runner.invoke(main, ['analyze', '--shell', str(shell_path), '--threshold', '2'])

        assert result.exit_code == 0
        assert 'Struggle sessions: 2' in result.output

    def test_analyze_invalid_config(self, runner, shell_path):
        result = runner.invoke(main, ['analyze', '--shell', str(shell_path), '--window-hours', '0'])

        assert result.exit_code == 1
        assert 'Invalid configuration' in result.output

    def test_analyze_reads_config_file(self, runner, shell_path, temp_dir):
        config = temp_dir / 'config.json'
        config.write_text(json.dumps({'struggle_threshold': 2}))

        result = runner.invoke(main, ['analyze', '--shell', str(shell_path), '--config', str(config)])

        assert result.exit_code == 0
        assert 'Struggle sessions: 2' in result.output


class TestSessionsCommand:
    """Tests for sessions command."""

    def test_sessions_lists_types(self, runner, commits_path, other_repo_commits_path, conversations_path):
        result = runner.invoke(main, [
            'sessions',
            '--commits', str(commits_path),
            '--commits', str(other_repo_commits_path),
            '--conversations', str(conversations_path),
        ])

        assert result.exit_code == 0
        assert '[2026-01-15 10:00] conv-copy (claude-code): CopyPasteFromClaude' in result.output
        assert 'conv-fix (cursor): Collaboration' in result.output
        assert 'conv-learn (claude-code): LearningSession' in result.output
        assert '2 AI-assisted commits, 3 solo commits' in result.output

    def test_sessions_requires_conversations(self, runner):
        result = runner.invoke(main, ['sessions'])
        assert result.exit_code != 0


class TestStrugglesCommand:
    """Tests for struggles command."""

    def test_struggles(self, runner, shell_path):
        result = runner.invoke(main, ['struggles', '--shell', str(shell_path)])

        assert result.exit_code == 0
        assert 'Found 1 struggle sessions' in result.output
        assert '2026-01-15 13:52-14:00: 4 failures, npm install failure (resolved)' in result.output

    def test_struggles_none_found(self, runner, shell_path):
        result = runner.invoke(main, ['struggles', '--shell', str(shell_path), '--threshold', '10'])

        assert result.exit_code == 0
        assert 'No struggle sessions found.' in result.output
