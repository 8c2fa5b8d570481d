from __future__ import annotations

import random

import pytest

from planner.day_classifier import (
    MAX_EMPHASIS_DAYS,
    DayMode,
    balance_ratio,
    draw_day_mode,
    emphasis_day_budget,
    sample_emphasis_days,
)


@pytest.mark.parametrize(
    ("selected", "expected"),
    [("75-25", 0.75), ("50-50", 0.5), ("25-75", 0.25), ("", 0.5), ("90-10", 0.5)],
)
def test_balance_ratio_mapping(selected: str, expected: float) -> None:
    assert balance_ratio(selected) == expected


def test_emphasis_budget_caps_at_eighteen() -> None:
    assert emphasis_day_budget(0) == 0
    assert emphasis_day_budget(2) == 0
    assert emphasis_day_budget(30) == 10
    assert emphasis_day_budget(365) == MAX_EMPHASIS_DAYS


def test_emphasis_sample_stays_within_budget() -> None:
    for seed in range(200):
        rng = random.Random(seed)
        total = rng.randint(1, 120)
        offsets = sample_emphasis_days(total, rng)
        assert len(offsets) <= emphasis_day_budget(total)
        assert all(0 <= offset < total for offset in offsets)


def test_emphasis_sampling_allows_collisions() -> None:
    class RepeatingRandom(random.Random):
        def randrange(self, *args, **kwargs):  # type: ignore[override]
            return 4

    offsets = sample_emphasis_days(30, RepeatingRandom())
    assert offsets == {4}


def test_extreme_ratios_fix_the_day_mode() -> None:
    rng = random.Random(7)
    assert all(draw_day_mode(1.0, rng) is DayMode.REVIEW for _ in range(100))
    assert all(draw_day_mode(0.0, rng) is DayMode.PRACTICE for _ in range(100))
