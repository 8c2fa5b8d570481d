"""Static catalog of study activities the schedule generator can place."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

CATALOG_VERSION = "2024-11"

ADAPTIVE_TUTORING = "Adaptive Tutoring Suite"
ANKI_CLINIC = "Anki Clinic"
REGULAR_ANKI = "Regular Anki"
UWORLD = "UWorld"
AAMC_MATERIALS = "AAMC Materials"
DAILY_CARS = "MyMCAT Daily CARs"
AAMC_CARS = "AAMC CARs"


class ActivityKind(str, Enum):
    REVIEW = "Review"
    PRACTICE = "Practice"


EXAM_ACTIVITY_TYPE = "Exam"


@dataclass(frozen=True)
class DurationPolicy:
    """Allowed hours for one placement; a fixed policy has ``minimum == maximum``."""

    minimum: float
    maximum: float

    @classmethod
    def fixed(cls, hours: float) -> "DurationPolicy":
        return cls(minimum=hours, maximum=hours)

    @classmethod
    def range(cls, minimum: float, maximum: float) -> "DurationPolicy":
        if minimum <= 0 or maximum < minimum:
            raise ValueError(f"Invalid duration range {minimum}-{maximum}")
        return cls(minimum=minimum, maximum=maximum)

    @property
    def is_fixed(self) -> bool:
        return self.minimum == self.maximum

    def contains(self, hours: float) -> bool:
        return self.minimum <= hours <= self.maximum


@dataclass(frozen=True)
class ActivityCategoryDef:
    name: str
    kind: ActivityKind
    priority: int
    duration: DurationPolicy
    optional: bool
    description: str


_CARS_DESCRIPTION = (
    "Practice CARS passages to improve your critical analysis and reasoning skills. "
    "Focus on understanding complex arguments, identifying main ideas, and developing "
    "your reading speed and comprehension."
)

ACTIVITY_CATALOG: Tuple[ActivityCategoryDef, ...] = (
    ActivityCategoryDef(
        name=ADAPTIVE_TUTORING,
        kind=ActivityKind.REVIEW,
        priority=1,
        duration=DurationPolicy.range(1, 3),
        optional=True,
        description=(
            "Engage with personalized content tailored to your knowledge gaps. Review key "
            "concepts, practice problem-solving, and strengthen your understanding of "
            "challenging topics through interactive learning modules."
        ),
    ),
    ActivityCategoryDef(
        name=ANKI_CLINIC,
        kind=ActivityKind.REVIEW,
        priority=2,
        duration=DurationPolicy.range(0.5, 1.5),
        optional=True,
        description=(
            "Review and reinforce key concepts using spaced repetition. Focus on high-yield "
            "facts, strengthen your recall ability, and maintain long-term retention of "
            "important MCAT content."
        ),
    ),
    ActivityCategoryDef(
        name=REGULAR_ANKI,
        kind=ActivityKind.REVIEW,
        priority=2,
        duration=DurationPolicy.range(0.5, 1.5),
        optional=True,
        description=(
            "Review and reinforce key concepts using spaced repetition with your own Anki "
            "deck. Focus on high-yield facts and maintain long-term retention of important "
            "MCAT content."
        ),
    ),
    ActivityCategoryDef(
        name=UWORLD,
        kind=ActivityKind.PRACTICE,
        priority=3,
        duration=DurationPolicy.range(1, 3),
        optional=True,
        description=(
            "Complete UWorld question blocks focusing on identifying knowledge gaps and "
            "improving test-taking strategies. Review explanations thoroughly and create "
            "notes on commonly missed concepts."
        ),
    ),
    ActivityCategoryDef(
        name=AAMC_MATERIALS,
        kind=ActivityKind.PRACTICE,
        priority=3,
        duration=DurationPolicy.fixed(2),
        optional=True,
        description=(
            "Work through official AAMC practice materials to familiarize yourself with "
            "actual MCAT-style questions. Focus on the reasoning behind correct and "
            "incorrect answers."
        ),
    ),
    ActivityCategoryDef(
        name=DAILY_CARS,
        kind=ActivityKind.PRACTICE,
        priority=3,
        duration=DurationPolicy.range(0.5, 1),
        optional=True,
        description=_CARS_DESCRIPTION,
    ),
    ActivityCategoryDef(
        name=AAMC_CARS,
        kind=ActivityKind.PRACTICE,
        priority=3,
        duration=DurationPolicy.range(0.5, 1),
        optional=True,
        description=_CARS_DESCRIPTION + " Today's passages come from the official AAMC CARS bank.",
    ),
)

_BY_NAME: Dict[str, ActivityCategoryDef] = {entry.name: entry for entry in ACTIVITY_CATALOG}


def get_activity(name: str) -> ActivityCategoryDef:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown activity '{name}'") from None


def is_catalog_activity(name: str) -> bool:
    return name in _BY_NAME


def activity_description(name: str) -> str:
    entry = _BY_NAME.get(name)
    return entry.description if entry else f"Work on {name}"


def default_duration(name: str) -> float:
    """Hours assigned when an activity is placed without an allocation pass."""
    return get_activity(name).duration.minimum


__all__ = [
    "AAMC_CARS",
    "AAMC_MATERIALS",
    "ACTIVITY_CATALOG",
    "ADAPTIVE_TUTORING",
    "ANKI_CLINIC",
    "ActivityCategoryDef",
    "ActivityKind",
    "CATALOG_VERSION",
    "DAILY_CARS",
    "DurationPolicy",
    "EXAM_ACTIVITY_TYPE",
    "REGULAR_ANKI",
    "UWORLD",
    "activity_description",
    "default_duration",
    "get_activity",
    "is_catalog_activity",
]
