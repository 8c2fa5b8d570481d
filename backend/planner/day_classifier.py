"""Randomized day classification for the schedule generator."""

from __future__ import annotations

import random
from enum import Enum
from typing import Dict, Set

MAX_EMPHASIS_DAYS = 18
DEFAULT_BALANCE = "50-50"

BALANCE_RATIOS: Dict[str, float] = {
    "75-25": 0.75,
    "50-50": 0.5,
    "25-75": 0.25,
}


class DayMode(str, Enum):
    REVIEW = "Review"
    PRACTICE = "Practice"


def balance_ratio(selected_balance: str) -> float:
    """Map a content/practice balance choice to the probability of a review day."""
    return BALANCE_RATIOS.get(selected_balance.strip(), BALANCE_RATIOS[DEFAULT_BALANCE])


def emphasis_day_budget(total_days: int) -> int:
    return min(MAX_EMPHASIS_DAYS, max(total_days, 0) // 3)


def sample_emphasis_days(total_days: int, rng: random.Random) -> Set[int]:
    """Pick day offsets that use the alternate CARS source.

    Offsets are drawn with replacement, so collisions shrink the result below
    the budget.
    """
    selected: Set[int] = set()
    for _ in range(emphasis_day_budget(total_days)):
        selected.add(rng.randrange(total_days))
    return selected


def draw_day_mode(ratio: float, rng: random.Random) -> DayMode:
    return DayMode.REVIEW if rng.random() < ratio else DayMode.PRACTICE


__all__ = [
    "BALANCE_RATIOS",
    "DEFAULT_BALANCE",
    "DayMode",
    "MAX_EMPHASIS_DAYS",
    "balance_ratio",
    "draw_day_mode",
    "emphasis_day_budget",
    "sample_emphasis_days",
]
