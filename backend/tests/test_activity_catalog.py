from __future__ import annotations

import pytest

from planner.activity_catalog import (
    AAMC_CARS,
    AAMC_MATERIALS,
    ACTIVITY_CATALOG,
    ADAPTIVE_TUTORING,
    DAILY_CARS,
    UWORLD,
    ActivityKind,
    DurationPolicy,
    activity_description,
    default_duration,
    get_activity,
    is_catalog_activity,
)


def test_catalog_names_are_unique() -> None:
    names = [entry.name for entry in ACTIVITY_CATALOG]
    assert len(names) == len(set(names))


def test_aamc_materials_is_fixed_two_hours() -> None:
    entry = get_activity(AAMC_MATERIALS)
    assert entry.duration.is_fixed
    assert entry.duration.minimum == 2
    assert entry.kind is ActivityKind.PRACTICE


def test_review_and_practice_kinds() -> None:
    assert get_activity(ADAPTIVE_TUTORING).kind is ActivityKind.REVIEW
    assert get_activity(UWORLD).kind is ActivityKind.PRACTICE
    assert get_activity(DAILY_CARS).kind is ActivityKind.PRACTICE
    assert get_activity(AAMC_CARS).kind is ActivityKind.PRACTICE


def test_duration_policy_bounds() -> None:
    policy = DurationPolicy.range(0.5, 1.5)
    assert policy.contains(0.5)
    assert policy.contains(1.5)
    assert not policy.contains(1.6)
    assert DurationPolicy.fixed(2).contains(2)
    assert not DurationPolicy.fixed(2).contains(1.5)
    with pytest.raises(ValueError):
        DurationPolicy.range(2, 1)


def test_unknown_activity_lookup() -> None:
    assert not is_catalog_activity("Kaplan Books")
    assert activity_description("Kaplan Books") == "Work on Kaplan Books"
    with pytest.raises(KeyError):
        get_activity("Kaplan Books")


def test_default_duration_is_the_minimum() -> None:
    assert default_duration(UWORLD) == 1
    assert default_duration(AAMC_MATERIALS) == 2
    assert default_duration(DAILY_CARS) == 0.5
