"""Prioritized recommendations derived from analysis metrics."""

from dataclasses import dataclass
from typing import Callable, Optional

from .models import Priority, Recommendation


@dataclass(frozen=True)
class RecommendationRule:
    """A threshold on one metric and the advice to give when it trips.

    Text templates are formatted with the full metrics mapping.
    """
    priority: Priority
    category: str
    metric: str
    triggered: Callable[[float], bool]
    issue: str
    action: str
    impact: str


# Evaluated in order; the order also breaks ties between rules of equal priority.
RECOMMENDATION_RULES = [
    RecommendationRule(
        priority=Priority.CRITICAL,
        category='Overall Productivity',
        metric='overall_score',
        triggered=lambda v: v < 60,
        issue='Overall productivity score is {overall_score:.1f} ({grade})',
        action='Address the high-priority items below first, starting with shell failures and AI usage patterns',
        impact='Raising the score above 60 moves the grade out of the C range',
    ),
    RecommendationRule(
        priority=Priority.HIGH,
        category='Shell Efficiency',
        metric='failure_rate',
        triggered=lambda v: v > 0.20,
        issue='{failure_rate:.0%} of shell commands fail',
        action='Automate the most-failed commands with scripts or aliases and check prerequisites before running them',
        impact='Could recover a large part of the {time_wasted_hours:.1f} hours lost to failed commands',
    ),
    RecommendationRule(
        priority=Priority.HIGH,
        category='Code Quality',
        metric='copy_paste_incidents',
        triggered=lambda v: v > 20,
        issue='{copy_paste_incidents} large commits landed within minutes of an AI conversation ending',
        action='Review and test AI-generated code before committing; split large changes into smaller commits',
        impact='Fewer regressions from code that was committed without being understood',
    ),
    RecommendationRule(
        priority=Priority.MEDIUM,
        category='Workflow',
        metric='struggle_session_count',
        triggered=lambda v: v > 50,
        issue='{struggle_session_count} struggle sessions of repeated shell failures',
        action='Ask for help earlier: after {struggle_threshold} failed retries, switch to an AI conversation or documentation',
        impact='Shorter time to resolution for recurring failures',
    ),
    RecommendationRule(
        priority=Priority.MEDIUM,
        category='AI Effectiveness',
        metric='ai_helpfulness_rate',
        triggered=lambda v: v < 0.50,
        issue='Only {ai_helpfulness_rate:.0%} of AI conversations started during a struggle led to a commit',
        action='Give the assistant the failing command and full error output, and ask for a concrete fix',
        impact='More struggles resolved through AI help instead of abandoned',
    ),
    RecommendationRule(
        priority=Priority.MEDIUM,
        category='AI Effectiveness',
        metric='velocity_improvement',
        triggered=lambda v: v < 0,
        issue='AI-assisted work is {velocity_slowdown:.1f}% slower than solo work',
        action='Reserve AI sessions for unfamiliar code and boilerplate; keep routine changes solo',
        impact='Closes the velocity gap between AI-assisted and solo commits',
    ),
    RecommendationRule(
        priority=Priority.MEDIUM,
        category='Shell Efficiency',
        metric='time_wasted_hours',
        triggered=lambda v: v > 10,
        issue='{time_wasted_hours:.1f} hours spent on failed commands and retries',
        action='Look at the most common error category and fix its root cause in the environment',
        impact='Hours returned to productive work',
    ),
    RecommendationRule(
        priority=Priority.LOW,
        category='Code Quality',
        metric='ai_code_percentage',
        triggered=lambda v: v > 80,
        issue='{ai_code_percentage:.0f}% of changed lines come from AI-assisted commits',
        action='Schedule regular reviews of AI-assisted changes and keep some work solo to maintain familiarity',
        impact='Better understanding and ownership of the codebase',
    ),
    RecommendationRule(
        priority=Priority.LOW,
        category='Learning',
        metric='learning_session_pct',
        triggered=lambda v: v > 50,
        issue='{learning_session_pct:.0f}% of AI conversations produced no commit',
        action='Capture what was learned in notes or small follow-up commits',
        impact='Turns exploration into lasting progress',
    ),
]


def evaluate_rules(metrics: dict, rules: Optional[list[RecommendationRule]] = None) -> list[Recommendation]:
    """
    Turn metric thresholds into prioritized recommendations.

    Metrics that are missing or None never trigger a rule. Only one
    recommendation is kept per category: the highest priority wins, rule
    order breaks ties. Output is sorted by priority (most urgent first),
    then rule order.
    """
    rules = RECOMMENDATION_RULES if rules is None else rules

    by_category: dict[str, tuple[int, RecommendationRule]] = {}
    for order, rule in enumerate(rules):
        value = metrics.get(rule.metric)
        if value is None or not rule.triggered(value):
            continue
        current = by_category.get(rule.category)
        if current is None or rule.priority.rank > current[1].priority.rank:
            by_category[rule.category] = (order, rule)

    chosen = sorted(by_category.values(), key=lambda item: (-item[1].priority.rank, item[0]))

    return [
        Recommendation(
            priority=rule.priority,
            category=rule.category,
            issue=rule.issue.format(**metrics),
            action=rule.action.format(**metrics),
            impact=rule.impact.format(**metrics),
        )
        for _, rule in chosen
    ]
