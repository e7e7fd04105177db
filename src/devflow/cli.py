"""CLI entry point for devflow."""

import sys
from pathlib import Path
import json

import click

from .validate import InputError


def _load_config(config_file, window_hours, struggle_gap, threshold, workflow_gap):
    from .config import load_config

    try:
        return load_config(
            Path(config_file) if config_file else None,
            window_hours=window_hours,
            struggle_gap_minutes=struggle_gap,
            struggle_threshold=threshold,
            workflow_gap_minutes=workflow_gap,
        )
    except ValueError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)


def _check_exists(path: Path, label: str):
    if not path.exists():
        click.echo(f"Error: {label} file not found: {path}", err=True)
        sys.exit(1)


def config_options(fn):
    """Options shared by every command that runs an analysis."""
    options = [
        click.option("--config", "config_file", default=None, help="Path to JSON config (default: ~/.devflow/config.json)"),
        click.option("--window-hours", type=float, default=None, help="Commit correlation window after a conversation (hours)"),
        click.option("--struggle-gap", type=float, default=None, help="Max gap between commands in a struggle session (minutes)"),
        click.option("--threshold", type=int, default=None, help="Failures needed for a struggle session"),
        click.option("--workflow-gap", type=float, default=None, help="Max delay from struggle to AI conversation (minutes)"),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


@click.group()
@click.version_option()
def main():
    """devflow - AI-assisted development productivity analysis."""
    pass


@main.command()
@click.option("--commits", "commit_files", multiple=True, help="Commit JSONL file (repeat once per repository)")
@click.option("--conversations", "conversations_file", default=None, help="Conversation session JSONL file")
@click.option("--shell", "shell_file", default=None, help="Shell command JSONL file")
@click.option("--format", "output_format", default="text", type=click.Choice(['text', 'json']), help="Output format")
@click.option("--output", default=None, help="Write report to file (default: stdout)")
@config_options
def analyze(commit_files, conversations_file, shell_file, output_format, output,
            config_file, window_hours, struggle_gap, threshold, workflow_gap):
    """Correlate conversations, commits and shell history into a productivity report."""
    from .loader import load_commits, load_conversations, load_shell_commands
    from .report import analyze as run_analysis, format_report

    if not commit_files and not conversations_file and not shell_file:
        click.echo("Error: Must specify at least one of: --commits, --conversations, --shell", err=True)
        sys.exit(1)

    config = _load_config(config_file, window_hours, struggle_gap, threshold, workflow_gap)

    commit_paths = [Path(p) for p in commit_files]
    for path in commit_paths:
        _check_exists(path, "Commits")
    if conversations_file:
        _check_exists(Path(conversations_file), "Conversations")
    if shell_file:
        _check_exists(Path(shell_file), "Shell history")

    try:
        # One stream per repository; analysis merges them after UTC normalization
        commits = [commit for path in commit_paths for commit in load_commits(path)]
        conversations = list(load_conversations(Path(conversations_file))) if conversations_file else []
        shell_commands = list(load_shell_commands(Path(shell_file))) if shell_file else []

        report = run_analysis(commits, conversations, shell_commands, config)
    except InputError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == 'json':
        text = json.dumps(report.to_dict(), indent=2)
    else:
        text = format_report(report)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + '\n')
        click.echo(f"Wrote report to: {output_path}")
    else:
        click.echo(text)


@main.command()
@click.option("--commits", "commit_files", multiple=True, help="Commit JSONL file (repeat once per repository)")
@click.option("--conversations", "conversations_file", required=True, help="Conversation session JSONL file")
@config_options
def sessions(commit_files, conversations_file, config_file, window_hours, struggle_gap, threshold, workflow_gap):
    """List conversations with their session type and correlated commits."""
    from .classify import classify_all
    from .correlate import correlate, merge_commits
    from .loader import load_commits, load_conversations
    from .validate import normalize_inputs

    config = _load_config(config_file, window_hours, struggle_gap, threshold, workflow_gap)

    commit_paths = [Path(p) for p in commit_files]
    for path in commit_paths:
        _check_exists(path, "Commits")
    _check_exists(Path(conversations_file), "Conversations")

    try:
        raw_commits = [commit for path in commit_paths for commit in load_commits(path)]
        commits, conversations, _, _ = normalize_inputs(
            raw_commits, load_conversations(Path(conversations_file)), []
        )
        commits = merge_commits(commits)
    except InputError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    correlation = correlate(commits, conversations, config.window)
    session_types = classify_all(correlation, conversations)

    if not conversations:
        click.echo("No conversations found.")
        return

    for session in sorted(conversations, key=lambda s: (s.start, s.end, s.id)):
        session_commits = correlation.session_commits.get(session.id, ())
        time_str = session.start.strftime('%Y-%m-%d %H:%M')
        click.echo(f"[{time_str}] {session.id} ({session.tool}): {session_types[session.id].value}")
        for commit in session_commits:
            click.echo(f"    {commit.hash[:10]} +{commit.insertions}/-{commit.deletions} ({commit.files_changed} files)")

    click.echo("")
    click.echo(f"{len(correlation.ai_commits)} AI-assisted commits, {len(correlation.solo_commits)} solo commits")


@main.command()
@click.option("--shell", "shell_file", required=True, help="Shell command JSONL file")
@config_options
def struggles(shell_file, config_file, window_hours, struggle_gap, threshold, workflow_gap):
    """List struggle sessions (clusters of repeated shell failures)."""
    from .loader import load_shell_commands
    from .shell import analyze_shell
    from .validate import normalize_inputs

    config = _load_config(config_file, window_hours, struggle_gap, threshold, workflow_gap)
    shell_path = Path(shell_file)
    _check_exists(shell_path, "Shell history")

    try:
        _, _, commands, _ = normalize_inputs([], [], load_shell_commands(shell_path))
    except InputError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    analysis = analyze_shell(commands, config.struggle_gap, config.struggle_threshold)

    if not analysis.struggle_sessions:
        click.echo("No struggle sessions found.")
        return

    click.echo(f"Found {analysis.struggle_session_count} struggle sessions")
    click.echo("")
    for struggle in analysis.struggle_sessions:
        start_str = struggle.start.strftime('%Y-%m-%d %H:%M')
        end_str = struggle.end.strftime('%H:%M')
        status = "resolved" if struggle.resolved else "unresolved"
        click.echo(f"  {start_str}-{end_str}: {struggle.retries} failures, {struggle.dominant_error} ({status})")


if __name__ == "__main__":
    main()
