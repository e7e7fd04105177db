"""End-to-end analysis run and report rendering."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from .config import AnalysisConfig
from .correlate import correlate, merge_commits
from .models import (
    AIImpact,
    CommitRecord,
    ConversationSession,
    ProductivityScore,
    Recommendation,
    SessionType,
    ShellAnalysis,
    ShellCommandRecord,
    WorkflowAnalysis,
)
from .recommend import evaluate_rules
from .scoring import score_productivity
from .shell import analyze_shell
from .validate import normalize_inputs
from .velocity import compute_ai_impact
from .workflow import correlate_workflows


@dataclass(frozen=True)
class ProductivityReport:
    """Snapshot of one analysis run."""
    productivity_score: ProductivityScore
    ai_impact: AIImpact
    shell_analysis: ShellAnalysis
    workflow_correlation: WorkflowAnalysis
    recommendations: tuple[Recommendation, ...]
    config: AnalysisConfig
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Stable JSON-serializable representation."""
        return {
            'productivity_score': _serialize(self.productivity_score),
            'ai_impact': _serialize(self.ai_impact),
            'shell_analysis': _serialize(self.shell_analysis),
            'workflow_correlation': _serialize(self.workflow_correlation),
            'recommendations': _serialize(self.recommendations),
            'config': self.config.to_dict(),
            'warnings': list(self.warnings),
        }


def _serialize(value):
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return round(value, 2)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, frozenset):
        return sorted(value)
    if hasattr(value, '__dataclass_fields__'):
        data = {name: _serialize(getattr(value, name)) for name in value.__dataclass_fields__}
        # Include derived values that the JSON shape exposes
        for prop in _EXPORTED_PROPERTIES.get(type(value).__name__, ()):
            data[prop] = _serialize(getattr(value, prop))
        return data
    raise TypeError(f"Cannot serialize {type(value).__name__}")


_EXPORTED_PROPERTIES = {
    'AIImpact': ('copy_paste_incidents', 'total_commits'),
    'ShellAnalysis': ('struggle_session_count',),
    'MonthlyDependency': ('dependency_pct',),
    'LanguageShare': ('ai_share_pct',),
    'WorkflowCycle': ('resolution_minutes', 'total_minutes'),
    'CommitRecord': ('lines_changed',),
    'ShellCommandRecord': ('failed',),
}


def build_metrics(
    score: ProductivityScore,
    ai_impact: AIImpact,
    shell: ShellAnalysis,
    workflow: WorkflowAnalysis,
    config: AnalysisConfig,
) -> dict:
    """Flatten the metrics the recommendation rules look at."""
    conversations = sum(ai_impact.session_types.values())
    learning = ai_impact.session_types.get(SessionType.LEARNING.value, 0)
    improvement = ai_impact.velocity_improvement

    return {
        'overall_score': score.overall,
        'grade': score.grade,
        'failure_rate': shell.failure_rate,
        'copy_paste_incidents': ai_impact.copy_paste_incidents,
        'struggle_session_count': shell.struggle_session_count,
        'struggle_threshold': config.struggle_threshold,
        'ai_helpfulness_rate': workflow.ai_helpfulness_rate,
        'velocity_improvement': improvement,
        'velocity_slowdown': -improvement if improvement is not None and improvement < 0 else 0.0,
        'time_wasted_hours': shell.time_wasted_hours,
        'ai_code_percentage': ai_impact.ai_code_percentage,
        'learning_session_pct': learning / conversations * 100 if conversations else None,
    }


def analyze(
    commits: Iterable[CommitRecord],
    conversations: Iterable[ConversationSession],
    shell_commands: Iterable[ShellCommandRecord],
    config: Optional[AnalysisConfig] = None,
) -> ProductivityReport:
    """
    Run the full analysis over already-loaded records.

    Raises InputError for malformed records; nothing is returned in that case.
    Identical inputs in any order produce identical reports.
    """
    config = config or AnalysisConfig()

    commits, conversations, shell_commands, warnings = normalize_inputs(commits, conversations, shell_commands)
    commits = merge_commits(commits)

    correlation = correlate(commits, conversations, config.window)
    shell = analyze_shell(shell_commands, config.struggle_gap, config.struggle_threshold)

    ai_impact = compute_ai_impact(correlation, conversations)
    workflow = correlate_workflows(
        shell.struggle_sessions, conversations, correlation, config.workflow_gap, config.window
    )

    score = score_productivity(
        velocity_improvement=ai_impact.velocity_improvement,
        copy_paste_incidents=ai_impact.copy_paste_incidents,
        shell_productivity=shell.shell_productivity_score,
        helpfulness_rate=workflow.ai_helpfulness_rate,
        struggle_count=shell.struggle_session_count,
    )

    recommendations = evaluate_rules(build_metrics(score, ai_impact, shell, workflow, config))

    return ProductivityReport(
        productivity_score=score,
        ai_impact=ai_impact,
        shell_analysis=shell,
        workflow_correlation=workflow,
        recommendations=tuple(recommendations),
        config=config,
        warnings=tuple(warnings),
    )


def _fmt(value: Optional[float], suffix: str = '', precision: int = 1) -> str:
    if value is None:
        return 'n/a'
    return f"{value:.{precision}f}{suffix}"


def format_report(report: ProductivityReport) -> str:
    """
    Format an analysis report as human-readable text.
    """
    lines = []
    score = report.productivity_score
    ai = report.ai_impact
    shell = report.shell_analysis
    workflow = report.workflow_correlation

    lines.append("Developer Productivity Report")
    lines.append("=" * 50)
    lines.append("")
    lines.append(f"Overall score: {score.overall:.1f} ({score.grade})")
    lines.append(f"  AI effectiveness: {score.ai_effectiveness:.1f}")
    lines.append(f"  Shell efficiency: {score.shell_efficiency:.1f}")
    lines.append(f"  Workflow quality: {score.workflow_quality:.1f}")
    lines.append("")

    lines.append("AI Impact")
    lines.append("-" * 40)
    lines.append(f"  Commits: {ai.total_commits} ({ai.ai_commits} AI-assisted, {ai.solo_commits} solo)")
    lines.append(f"  AI velocity: {_fmt(ai.ai_velocity, ' commits/h', 2)}")
    lines.append(f"  Solo velocity: {_fmt(ai.solo_velocity, ' commits/h', 2)}")
    lines.append(f"  Velocity improvement: {_fmt(ai.velocity_improvement, '%')}")
    lines.append(f"  AI code share: {_fmt(ai.ai_code_percentage, '%')} ({ai.ai_lines} of {ai.ai_lines + ai.solo_lines} lines)")
    lines.append(f"  Pair-programming sessions: {ai.pair_programming_sessions}")
    for session_type, count in ai.session_types.items():
        if count:
            lines.append(f"    {session_type}: {count}")
    if ai.learning_curve:
        lines.append("  Learning curve:")
        for month in ai.learning_curve:
            lines.append(f"    {month.month}: {month.dependency_pct:.0f}% ({month.ai_commits}/{month.total_commits})")
    lines.append("")

    lines.append("Shell Analysis")
    lines.append("-" * 40)
    lines.append(f"  Commands: {shell.total_commands} ({shell.failed_commands} failed)")
    lines.append(f"  Failure rate: {_fmt(shell.failure_rate * 100 if shell.failure_rate is not None else None, '%')}")
    lines.append(f"  Struggle sessions: {shell.struggle_session_count}")
    lines.append(f"  Time wasted: {shell.time_wasted_hours:.1f} h")
    for category, count in shell.errors_by_category.items():
        lines.append(f"    {category}: {count}")
    lines.append("")

    lines.append("Workflow Correlation")
    lines.append("-" * 40)
    for pattern, count in workflow.pattern_counts.items():
        lines.append(f"  {pattern}: {count}")
    helpfulness = workflow.ai_helpfulness_rate
    lines.append(f"  AI helpfulness: {_fmt(helpfulness * 100 if helpfulness is not None else None, '%')}")
    lines.append(f"  Avg AI resolution: {_fmt(workflow.avg_ai_resolution_minutes, ' min')}")
    lines.append(f"  Avg solo resolution: {_fmt(workflow.avg_solo_resolution_minutes, ' min')}")
    lines.append("")

    if report.recommendations:
        lines.append(f"Recommendations ({len(report.recommendations)})")
        lines.append("-" * 40)
        for rec in report.recommendations:
            lines.append(f"  [{rec.priority.value}] {rec.category}: {rec.issue}")
            lines.append(f"    Action: {rec.action}")
            lines.append(f"    Impact: {rec.impact}")
        lines.append("")
    else:
        lines.append("No recommendations - keep it up!")

    return '\n'.join(lines)
