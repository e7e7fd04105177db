"""Shell-history failure analysis and struggle-session detection.

Only command prefixes, exit codes and durations are inspected. Command text
is assumed to be redacted upstream.
"""

import re
from collections import Counter
from datetime import timedelta
from typing import Iterable, Optional, Sequence

from .models import ShellAnalysis, ShellCommandRecord, StruggleSession


# =============================================================================
# Failure Signatures
# =============================================================================

# Matched against the start of the command text (case-insensitive).
# IMPORTANT: Order matters! More specific patterns must come before generic ones.
ERROR_SIGNATURES = [
    # --- Package managers ---
    (r'(npm|pnpm|yarn)\s+(install|i|add|ci)\b', 'npm install failure'),
    (r'(pip3?|uv\s+pip|poetry|pipenv)\s+(install|add|sync)\b', 'pip install failure'),
    (r'cargo\s+(add|install|update)\b', 'cargo dependency failure'),
    (r'(apt(-get)?|brew|dnf|yum)\s+install\b', 'system package failure'),

    # --- Tests (before builds: "cargo test" also compiles) ---
    (r'(pytest|python3?\s+-m\s+pytest|tox|nox)\b', 'test failure'),
    (r'(npm|pnpm|yarn)\s+(run\s+)?test\b', 'test failure'),
    (r'(cargo|go)\s+test\b', 'test failure'),
    (r'(jest|vitest|mocha|rspec)\b', 'test failure'),

    # --- Builds / compilers ---
    (r'(npm|pnpm|yarn)\s+run\s+build\b', 'build failure'),
    (r'(cargo|go)\s+build\b', 'build failure'),
    (r'(make|cmake|gradle|mvn|tsc|gcc|clang|javac|rustc)\b', 'build failure'),

    # --- Linters / type checkers ---
    (r'(ruff|flake8|pylint|mypy|eslint|prettier|black|cargo\s+clippy)\b', 'lint failure'),

    # --- Version control ---
    (r'git\s+push\b', 'git push rejected'),
    (r'git\s+(pull|fetch|clone)\b', 'git sync failure'),
    (r'git\s+(merge|rebase|cherry-pick)\b', 'git merge conflict'),
    (r'git\b', 'git failure'),

    # --- Containers / infra ---
    (r'(docker|docker-compose|podman)\b', 'docker failure'),
    (r'(kubectl|helm)\b', 'kubernetes failure'),
    (r'(terraform|pulumi)\b', 'infrastructure failure'),

    # --- Network ---
    (r'(curl|wget|ssh|scp|rsync)\b', 'network failure'),
]

_COMPILED_SIGNATURES = [
    (re.compile(r'^(?:sudo\s+)?' + pattern, re.IGNORECASE), category)
    for pattern, category in ERROR_SIGNATURES
]

# Conventional shell exit codes, consulted when no command signature matches
EXIT_CODE_CATEGORIES = {
    126: 'permission denied',
    127: 'command not found',
    130: 'interrupted',
    137: 'killed',
}

UNKNOWN_CATEGORY = 'Unknown'

MOST_FAILED_LIMIT = 5


def categorize_failure(command: ShellCommandRecord) -> str:
    """
    Map a failed command to an error category.

    Command-prefix signatures are tried first, then exit-code semantics.
    Unmatched failures are 'Unknown'.
    """
    text = command.command.strip()
    for pattern, category in _COMPILED_SIGNATURES:
        if pattern.match(text):
            return category
    return EXIT_CODE_CATEGORIES.get(command.exit_code, UNKNOWN_CATEGORY)


def command_prefix(command: ShellCommandRecord) -> str:
    """First two words of a command (ignoring sudo and flags), e.g. 'npm install'."""
    words = command.command.split()
    if words and words[0] == 'sudo':
        words = words[1:]
    if not words:
        return ''
    if len(words) > 1 and not words[1].startswith('-'):
        return f"{words[0]} {words[1]}"
    return words[0]


def _dominant_error(commands: Sequence[ShellCommandRecord]) -> str:
    categories = [categorize_failure(c) for c in commands]
    counts = Counter(categories)
    first_seen = {}
    for i, category in enumerate(categories):
        first_seen.setdefault(category, i)
    return max(counts, key=lambda cat: (counts[cat], -first_seen[cat]))


def _command_sort_key(command: ShellCommandRecord):
    return (command.timestamp, command.command, command.exit_code, command.duration_seconds)


def _command_end(command: ShellCommandRecord):
    return command.timestamp + timedelta(seconds=command.duration_seconds)


def _build_struggle(failures: list[ShellCommandRecord], resolved: bool) -> StruggleSession:
    return StruggleSession(
        start=failures[0].timestamp,
        end=_command_end(failures[-1]),
        retries=len(failures),
        dominant_error=_dominant_error(failures),
        commands=tuple(failures),
        resolved=resolved,
    )


def detect_struggles(
    commands: Iterable[ShellCommandRecord],
    gap: timedelta,
    threshold: int,
) -> list[StruggleSession]:
    """
    Find clusters of repeated failures in shell history.

    Grouping uses time gaps only. A run starts at a failing command and
    continues while every command follows the previous one within `gap`.
    Successes in between do not break it. Once the run holds `threshold`
    failures, the next success closes it as a resolved struggle session.
    A gap larger than `gap` ends the run, which becomes an unresolved
    struggle session if it reached the threshold. Only failing commands
    count as retries.

    Sessions are returned in time order and never overlap.
    """
    struggles: list[StruggleSession] = []
    run: list[ShellCommandRecord] = []
    previous: Optional[ShellCommandRecord] = None

    for command in sorted(commands, key=_command_sort_key):
        if run and previous is not None and command.timestamp - previous.timestamp > gap:
            if len(run) >= threshold:
                struggles.append(_build_struggle(run, resolved=False))
            run = []

        if command.failed:
            run.append(command)
        elif len(run) >= threshold:
            struggles.append(_build_struggle(run, resolved=True))
            run = []

        previous = command

    if len(run) >= threshold:
        struggles.append(_build_struggle(run, resolved=False))

    return struggles


def idle_seconds(struggle: StruggleSession) -> float:
    """Time between consecutive failures of a struggle when no command was running."""
    idle = 0.0
    for prev, cmd in zip(struggle.commands, struggle.commands[1:]):
        gap = (cmd.timestamp - _command_end(prev)).total_seconds()
        if gap > 0:
            idle += gap
    return idle


def shell_productivity_score(failure_rate: Optional[float], struggle_count: int) -> float:
    """
    Score shell efficiency on 0-100.

    clamp(100 - failure_rate*100*0.5 - min(struggles, 50)*0.5, 0, 100).
    An empty history (failure_rate None) counts as no failures.
    """
    rate = failure_rate or 0.0
    score = 100 - rate * 100 * 0.5 - min(struggle_count, 50) * 0.5
    return max(0.0, min(100.0, score))


def analyze_shell(
    commands: Sequence[ShellCommandRecord],
    gap: timedelta,
    threshold: int,
) -> ShellAnalysis:
    """
    Compute failure statistics and struggle sessions for a shell history.

    Returns a ShellAnalysis; failure_rate is None for an empty history.
    """
    ordered = sorted(commands, key=_command_sort_key)
    failures = [c for c in ordered if c.failed]

    failure_rate = len(failures) / len(ordered) if ordered else None
    struggles = detect_struggles(ordered, gap, threshold)

    wasted_seconds = sum(c.duration_seconds for c in failures)
    wasted_seconds += sum(idle_seconds(s) for s in struggles)

    category_counts = Counter(categorize_failure(c) for c in failures)
    errors_by_category = dict(sorted(category_counts.items(), key=lambda kv: (-kv[1], kv[0])))

    prefix_counts = Counter(command_prefix(c) for c in failures)
    most_failed = sorted(prefix_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:MOST_FAILED_LIMIT]

    return ShellAnalysis(
        total_commands=len(ordered),
        failed_commands=len(failures),
        failure_rate=failure_rate,
        time_wasted_hours=wasted_seconds / 3600,
        struggle_sessions=tuple(struggles),
        shell_productivity_score=shell_productivity_score(failure_rate, len(struggles)),
        errors_by_category=errors_by_category,
        most_failed_commands=tuple(most_failed),
    )
