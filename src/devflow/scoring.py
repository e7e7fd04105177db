"""Productivity scoring: weighted sub-scores and letter grades."""

import math
from typing import Optional

from .models import ProductivityScore


AI_EFFECTIVENESS_WEIGHT = 0.4
SHELL_EFFICIENCY_WEIGHT = 0.3
WORKFLOW_QUALITY_WEIGHT = 0.3

NEUTRAL_BASELINE = 50.0
COPY_PASTE_PENALTY = 2.0
STRUGGLE_ALLOWANCE = 20
STRUGGLES_PER_PENALTY_POINT = 10

# (lower bound, grade), highest first. Each grade covers [bound, next bound).
GRADE_TABLE = [
    (90.0, 'A+'),
    (85.0, 'A'),
    (80.0, 'A-'),
    (75.0, 'B+'),
    (70.0, 'B'),
    (65.0, 'B-'),
    (60.0, 'C+'),
    (55.0, 'C'),
    (50.0, 'C-'),
    (0.0, 'D'),
]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def ai_effectiveness_score(velocity_improvement: Optional[float], copy_paste_incidents: int) -> float:
    """
    Score AI effectiveness on 0-100.

    clamp(50 + velocity_improvement / 2) minus 2 points per copy-paste
    incident. Without a velocity comparison the neutral 50 is used.
    """
    if velocity_improvement is None:
        base = NEUTRAL_BASELINE
    else:
        base = clamp(NEUTRAL_BASELINE + velocity_improvement / 2)
    return max(0.0, base - COPY_PASTE_PENALTY * copy_paste_incidents)


def shell_efficiency_score(shell_productivity_score: float) -> float:
    return clamp(shell_productivity_score)


def workflow_quality_score(helpfulness_rate: Optional[float], struggle_count: int) -> float:
    """
    Score workflow quality on 0-100.

    clamp(helpfulness_rate * 100) minus 1 point per 10 struggle sessions
    beyond 20. Without struggle-triggered conversations the neutral 50 is used.
    """
    if helpfulness_rate is None:
        base = NEUTRAL_BASELINE
    else:
        base = clamp(helpfulness_rate * 100)
    excess = max(0, struggle_count - STRUGGLE_ALLOWANCE)
    penalty = math.floor(excess / STRUGGLES_PER_PENALTY_POINT)
    return max(0.0, base - penalty)


def overall_score(ai_effectiveness: float, shell_efficiency: float, workflow_quality: float) -> float:
    return (
        AI_EFFECTIVENESS_WEIGHT * ai_effectiveness
        + SHELL_EFFICIENCY_WEIGHT * shell_efficiency
        + WORKFLOW_QUALITY_WEIGHT * workflow_quality
    )


def grade_for(score: float) -> str:
    """Map a 0-100 score to a letter grade."""
    for lower_bound, grade in GRADE_TABLE:
        if score >= lower_bound:
            return grade
    return GRADE_TABLE[-1][1]


def score_productivity(
    velocity_improvement: Optional[float],
    copy_paste_incidents: int,
    shell_productivity: float,
    helpfulness_rate: Optional[float],
    struggle_count: int,
) -> ProductivityScore:
    """Combine the sub-scores into a graded ProductivityScore."""
    ai_effectiveness = ai_effectiveness_score(velocity_improvement, copy_paste_incidents)
    shell_efficiency = shell_efficiency_score(shell_productivity)
    workflow_quality = workflow_quality_score(helpfulness_rate, struggle_count)
    overall = clamp(overall_score(ai_effectiveness, shell_efficiency, workflow_quality))

    return ProductivityScore(
        overall=overall,
        grade=grade_for(overall),
        ai_effectiveness=ai_effectiveness,
        shell_efficiency=shell_efficiency,
        workflow_quality=workflow_quality,
    )
