"""Per-day activity allocation.

Each day walks an ordered rule table picked by day mode and exam phase. A rule
names the activity it would place, the hours it must leave for rules further
down the chain, and whether its duration is truncated to whole hours. Rules
whose resource is missing, or that cannot meet their minimum, are skipped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Tuple

from .activity_catalog import (
    AAMC_CARS,
    AAMC_MATERIALS,
    ADAPTIVE_TUTORING,
    ANKI_CLINIC,
    DAILY_CARS,
    REGULAR_ANKI,
    UWORLD,
    DurationPolicy,
    get_activity,
)
from .day_classifier import DayMode
from .milestones import is_late_phase
from .study_plan import ResourceFlags

logger = logging.getLogger(__name__)


class AnkiVariant(str, Enum):
    NONE = "none"
    CLINIC = "clinic"
    REGULAR = "regular"

    @classmethod
    def resolve(cls, clinic: bool, regular: bool) -> "AnkiVariant":
        """Anki Clinic takes precedence when the learner has both."""
        if clinic:
            return cls.CLINIC
        if regular:
            return cls.REGULAR
        return cls.NONE

    @property
    def activity_name(self) -> Optional[str]:
        if self is AnkiVariant.CLINIC:
            return ANKI_CLINIC
        if self is AnkiVariant.REGULAR:
            return REGULAR_ANKI
        return None


class DailyAllocation(NamedTuple):
    activity_name: str
    hours: float


@dataclass(frozen=True)
class DayContext:
    resources: ResourceFlags
    anki: AnkiVariant
    is_emphasis_day: bool


@dataclass(frozen=True)
class AllocationRule:
    label: str
    select: Callable[[DayContext], Optional[str]]
    reserve: float = 0.0
    whole_hours: bool = False


def _adaptive(ctx: DayContext) -> Optional[str]:
    return ADAPTIVE_TUTORING if ctx.resources.adaptive else None


def _anki(ctx: DayContext) -> Optional[str]:
    return ctx.anki.activity_name


def _uworld(ctx: DayContext) -> Optional[str]:
    return UWORLD if ctx.resources.uworld else None


def _aamc(ctx: DayContext) -> Optional[str]:
    return AAMC_MATERIALS if ctx.resources.aamc else None


def _cars(ctx: DayContext) -> Optional[str]:
    if not ctx.resources.cars:
        return None
    return AAMC_CARS if ctx.is_emphasis_day else DAILY_CARS


_ANKI_MIN = get_activity(ANKI_CLINIC).duration.minimum
_CARS_MIN = get_activity(DAILY_CARS).duration.minimum

CARS_RULE = AllocationRule("cars", _cars)
UWORLD_RULE = AllocationRule("uworld", _uworld, whole_hours=True)
AAMC_RULE = AllocationRule("aamc", _aamc)

REVIEW_RULES: Tuple[AllocationRule, ...] = (
    AllocationRule("adaptive", _adaptive, reserve=_ANKI_MIN + _CARS_MIN),
    AllocationRule("anki", _anki, reserve=_CARS_MIN),
    CARS_RULE,
)

# CARS is best-effort on practice days, so Anki reserves nothing for it.
EARLY_PRACTICE_RULES: Tuple[AllocationRule, ...] = (
    UWORLD_RULE,
    AAMC_RULE,
    AllocationRule("anki", _anki),
    CARS_RULE,
)

LATE_PRACTICE_RULES: Tuple[AllocationRule, ...] = (
    AAMC_RULE,
    UWORLD_RULE,
    AllocationRule("anki", _anki),
    CARS_RULE,
)


def rules_for(mode: DayMode, milestone: int) -> Tuple[AllocationRule, ...]:
    if mode is DayMode.REVIEW:
        return REVIEW_RULES
    return LATE_PRACTICE_RULES if is_late_phase(milestone) else EARLY_PRACTICE_RULES


def _rule_duration(policy: DurationPolicy, remaining: float, rule: AllocationRule) -> Optional[float]:
    if policy.is_fixed:
        return float(policy.minimum) if remaining >= policy.minimum else None
    usable = remaining - rule.reserve
    if rule.whole_hours:
        usable = math.floor(usable)
    if usable < policy.minimum:
        return None
    return float(min(policy.maximum, usable))


def allocate_day(
    hours_available: float,
    mode: DayMode,
    milestone: int,
    resources: ResourceFlags,
    is_emphasis_day: bool,
) -> List[DailyAllocation]:
    """Fill one study day, returning activities in priority order."""
    if hours_available <= 0:
        return []

    ctx = DayContext(
        resources=resources,
        anki=AnkiVariant.resolve(resources.ankigame, resources.anki),
        is_emphasis_day=is_emphasis_day,
    )
    remaining = float(hours_available)
    allocations: List[DailyAllocation] = []

    for rule in rules_for(mode, milestone):
        name = rule.select(ctx)
        if name is None:
            continue
        hours = _rule_duration(get_activity(name).duration, remaining, rule)
        if hours is None:
            logger.debug("Skipping %s: %.2fh left (reserve %.2fh)", name, remaining, rule.reserve)
            continue
        allocations.append(DailyAllocation(name, hours))
        remaining -= hours

    return allocations


__all__ = [
    "AllocationRule",
    "AnkiVariant",
    "DailyAllocation",
    "DayContext",
    "EARLY_PRACTICE_RULES",
    "LATE_PRACTICE_RULES",
    "REVIEW_RULES",
    "allocate_day",
    "rules_for",
]
