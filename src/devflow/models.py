"""Data models for devflow."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


# =============================================================================
# Normalized input records
# =============================================================================

@dataclass(frozen=True)
class ConversationSession:
    """An AI-assistant conversation, normalized by an upstream log parser."""
    id: str
    tool: str
    start: datetime
    end: datetime
    message_count: int = 0
    tool_use_count: int = 0
    files_touched: Optional[frozenset[str]] = None

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


@dataclass(frozen=True)
class CommitRecord:
    """A version-control commit with file-level statistics already parsed."""
    hash: str
    timestamp: datetime
    insertions: int = 0
    deletions: int = 0
    files_changed: int = 0
    language_breakdown: Optional[dict[str, int]] = None
    repository: Optional[str] = None

    @property
    def lines_changed(self) -> int:
        return self.insertions + self.deletions


@dataclass(frozen=True)
class ShellCommandRecord:
    """A single shell invocation with its (already redacted) command text."""
    timestamp: datetime
    command: str
    exit_code: int = 0
    duration_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.exit_code != 0


# =============================================================================
# Tagged variants
# =============================================================================

class SessionType(str, Enum):
    """Collaboration pattern of a conversation, in rule evaluation order."""
    COPY_PASTE = "CopyPasteFromClaude"
    GUIDED_REFACTOR = "ClaudeGuidedRefactor"
    INTENSE_COLLABORATION = "IntenseCollaboration"
    QUICK_FIX = "QuickFix"
    LEARNING = "LearningSession"
    COLLABORATION = "Collaboration"


class WorkflowPattern(str, Enum):
    FULL_CYCLE = "FullCycle"
    SHELL_TO_AI = "ShellToAI"
    AI_TO_COMMIT = "AIToCommit"
    SOLO_RESOLUTION = "SoloResolution"


class Priority(str, Enum):
    """Recommendation priority. Compare with `rank`, higher is more urgent."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 3,
    Priority.HIGH: 2,
    Priority.MEDIUM: 1,
    Priority.LOW: 0,
}


# =============================================================================
# Derived entities
# =============================================================================

@dataclass(frozen=True)
class PairProgrammingSession:
    """A conversation with at least one correlated commit."""
    conversation_id: str
    tool: str
    commits: tuple[CommitRecord, ...]
    session_type: SessionType
    lines_changed: int
    files_changed: int


@dataclass(frozen=True)
class StruggleSession:
    """A cluster of failing shell commands that reached the retry threshold."""
    start: datetime
    end: datetime
    retries: int
    dominant_error: str
    commands: tuple[ShellCommandRecord, ...] = ()
    resolved: bool = False


@dataclass(frozen=True)
class WorkflowCycle:
    """A causal chain across shell, conversation and commit streams."""
    pattern: WorkflowPattern
    trigger_time: datetime
    resolution_time: Optional[datetime] = None
    resolved_by_ai: bool = False
    conversation_id: Optional[str] = None
    commit_hash: Optional[str] = None
    struggle_start: Optional[datetime] = None

    @property
    def resolution_minutes(self) -> Optional[float]:
        if self.resolution_time is None:
            return None
        return (self.resolution_time - self.trigger_time).total_seconds() / 60

    @property
    def total_minutes(self) -> Optional[float]:
        """Minutes from the first failure of the struggle to the resolution."""
        if self.resolution_time is None or self.struggle_start is None:
            return None
        return (self.resolution_time - self.struggle_start).total_seconds() / 60


@dataclass(frozen=True)
class MonthlyDependency:
    """Share of AI-assisted commits in one calendar month (UTC)."""
    month: str  # YYYY-MM
    ai_commits: int
    total_commits: int

    @property
    def dependency_pct(self) -> float:
        return self.ai_commits / self.total_commits * 100 if self.total_commits else 0.0


@dataclass(frozen=True)
class LanguageShare:
    language: str
    ai_lines: int
    solo_lines: int

    @property
    def ai_share_pct(self) -> float:
        total = self.ai_lines + self.solo_lines
        return self.ai_lines / total * 100 if total else 0.0


@dataclass(frozen=True)
class ProductivityScore:
    overall: float
    grade: str
    ai_effectiveness: float
    shell_efficiency: float
    workflow_quality: float


@dataclass(frozen=True)
class Recommendation:
    priority: Priority
    category: str
    issue: str
    action: str
    impact: str


# =============================================================================
# Analysis results
# =============================================================================

@dataclass(frozen=True)
class CorrelationResult:
    """Commits joined to conversations.

    - commit_sessions: commit hash -> conversation id (None for solo commits)
    - session_commits: conversation id -> correlated commits (every conversation present)
    - ai_commits / solo_commits: ordered by (timestamp, hash)
    """
    commit_sessions: dict[str, Optional[str]]
    session_commits: dict[str, tuple[CommitRecord, ...]]
    ai_commits: tuple[CommitRecord, ...] = ()
    solo_commits: tuple[CommitRecord, ...] = ()


@dataclass(frozen=True)
class AIImpact:
    """Velocity, code volume and collaboration statistics for AI-assisted work."""
    ai_commits: int
    solo_commits: int
    ai_hours: float
    ai_velocity: Optional[float]
    solo_velocity: Optional[float]
    velocity_improvement: Optional[float]
    ai_lines: int
    solo_lines: int
    ai_code_percentage: Optional[float]
    pair_programming_sessions: int
    session_types: dict[str, int]
    avg_files_per_ai_commit: Optional[float]
    avg_files_per_solo_commit: Optional[float]
    average_session_minutes: Optional[float] = None
    sessions_by_tool: dict[str, int] = field(default_factory=dict)
    learning_curve: tuple[MonthlyDependency, ...] = ()
    language_share: tuple[LanguageShare, ...] = ()

    @property
    def copy_paste_incidents(self) -> int:
        return self.session_types.get(SessionType.COPY_PASTE.value, 0)

    @property
    def total_commits(self) -> int:
        return self.ai_commits + self.solo_commits


@dataclass(frozen=True)
class ShellAnalysis:
    """Failure statistics and struggle sessions from shell history."""
    total_commands: int
    failed_commands: int
    failure_rate: Optional[float]
    time_wasted_hours: float
    struggle_sessions: tuple[StruggleSession, ...]
    shell_productivity_score: float
    errors_by_category: dict[str, int] = field(default_factory=dict)
    most_failed_commands: tuple[tuple[str, int], ...] = ()

    @property
    def struggle_session_count(self) -> int:
        return len(self.struggle_sessions)


@dataclass(frozen=True)
class WorkflowAnalysis:
    """Cross-source workflow cycles and their resolution statistics."""
    cycles: tuple[WorkflowCycle, ...]
    pattern_counts: dict[str, int]
    ai_helpfulness_rate: Optional[float]
    avg_ai_resolution_minutes: Optional[float]
    avg_solo_resolution_minutes: Optional[float]
    unresolved_struggles: int = 0
