"""
Contribution graph levels.

Each day gets an intensity level from 0 to 4 according to how its total
duration compares with the busiest day in the window. Thresholds are
strict: a day at exactly 75% of the maximum is level 3, not 4.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

# (exclusive lower ratio bound, level), checked in order
LEVEL_THRESHOLDS = (
    (0.75, 4),
    (0.50, 3),
    (0.25, 2),
    (0.0, 1),
)
MAX_LEVEL = 4


@dataclass
class ContributionDay:
    date: str
    count: int = 0
    duration: int = 0
    level: int = 0


@dataclass
class ContributionData:
    days: List[ContributionDay] = field(default_factory=list)
    total_sessions: int = 0
    total_duration: int = 0


def window_max(durations: Iterable[int]) -> int:
    """Largest single-day duration, never less than 1."""
    return max([1, *durations])


def compute_level(duration: int, max_duration: int) -> int:
    if duration <= 0:
        return 0
    ratio = duration / max(max_duration, 1)
    for threshold, level in LEVEL_THRESHOLDS:
        if ratio > threshold:
            return level
    return 0


def compute_levels(daily_durations: Mapping[str, int], max_duration: int) -> Dict[str, int]:
    return {day: compute_level(duration, max_duration) for day, duration in daily_durations.items()}
