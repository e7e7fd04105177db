"""Analysis configuration: correlation windows and struggle thresholds."""

import json
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional


DEFAULT_WINDOW = timedelta(hours=2)
DEFAULT_STRUGGLE_GAP = timedelta(minutes=10)
DEFAULT_STRUGGLE_THRESHOLD = 3
DEFAULT_WORKFLOW_GAP = timedelta(minutes=30)


@dataclass(frozen=True)
class AnalysisConfig:
    """Tunable parameters shared by every analysis stage.

    - window: how long after a conversation ends a commit still correlates to it (W)
    - struggle_gap: max gap between shell commands in one struggle session (G)
    - struggle_threshold: failures needed before a run counts as a struggle
    - workflow_gap: max delay between a struggle and the conversation it triggers (G2)
    """
    window: timedelta = DEFAULT_WINDOW
    struggle_gap: timedelta = DEFAULT_STRUGGLE_GAP
    struggle_threshold: int = DEFAULT_STRUGGLE_THRESHOLD
    workflow_gap: timedelta = DEFAULT_WORKFLOW_GAP

    def __post_init__(self):
        for name in ('window', 'struggle_gap', 'workflow_gap'):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.struggle_threshold < 1:
            raise ValueError(f"struggle_threshold must be at least 1, got {self.struggle_threshold}")

    def to_dict(self) -> dict:
        return {
            'window_hours': self.window.total_seconds() / 3600,
            'struggle_gap_minutes': self.struggle_gap.total_seconds() / 60,
            'struggle_threshold': self.struggle_threshold,
            'workflow_gap_minutes': self.workflow_gap.total_seconds() / 60,
        }


def get_default_config_path() -> Path:
    """Get the path to the user config file.

    Returns:
        Path to ~/.devflow/config.json (not created)
    """
    return Path.home() / '.devflow' / 'config.json'


def load_config(
    path: Optional[Path] = None,
    window_hours: Optional[float] = None,
    struggle_gap_minutes: Optional[float] = None,
    struggle_threshold: Optional[int] = None,
    workflow_gap_minutes: Optional[float] = None,
) -> AnalysisConfig:
    """Build an AnalysisConfig from a JSON file plus explicit overrides.

    Args:
        path: Config file (defaults to ~/.devflow/config.json)
        window_hours, struggle_gap_minutes, struggle_threshold, workflow_gap_minutes:
            Overrides that win over values from the file

    Missing file or keys fall back to defaults. A corrupted file is reported
    on stderr and ignored. Invalid values raise ValueError.
    """
    config_file = path if path is not None else get_default_config_path()
    data = {}

    if config_file.exists():
        try:
            with config_file.open('r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            print(f"Warning: Ignoring unreadable config {config_file} ({type(e).__name__})", file=sys.stderr)
            data = {}
        if not isinstance(data, dict):
            print(f"Warning: Ignoring config {config_file} (expected a JSON object)", file=sys.stderr)
            data = {}

    overrides = {
        'window_hours': window_hours,
        'struggle_gap_minutes': struggle_gap_minutes,
        'struggle_threshold': struggle_threshold,
        'workflow_gap_minutes': workflow_gap_minutes,
    }
    for key, value in overrides.items():
        if value is not None:
            data[key] = value

    kwargs = {}
    if 'window_hours' in data:
        kwargs['window'] = timedelta(hours=float(data['window_hours']))
    if 'struggle_gap_minutes' in data:
        kwargs['struggle_gap'] = timedelta(minutes=float(data['struggle_gap_minutes']))
    if 'struggle_threshold' in data:
        kwargs['struggle_threshold'] = int(data['struggle_threshold'])
    if 'workflow_gap_minutes' in data:
        kwargs['workflow_gap'] = timedelta(minutes=float(data['workflow_gap_minutes']))

    return AnalysisConfig(**kwargs)
