"""Day-by-day study schedule generation over an inclusive date range."""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence

from .activity_catalog import activity_description, get_activity
from .daily_allocator import allocate_day
from .day_classifier import draw_day_mode, sample_emphasis_days
from .milestones import resolve_milestone
from .study_plan import ActivityPlacement, ExamEvent, PlanConfig

logger = logging.getLogger(__name__)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def generate_schedule(
    config: PlanConfig,
    exam_events: Sequence[ExamEvent],
    *,
    rng: Optional[random.Random] = None,
) -> List[ActivityPlacement]:
    """Build placements for every study day in ``config``'s range.

    Break days (0 hours) and exam days get nothing. Checklists are attached
    separately, so every placement starts with an empty task list.
    """
    rng = rng or random.Random()
    exam_days = {event.scheduled_date for event in exam_events}
    emphasis_offsets = sample_emphasis_days(config.total_days, rng)
    placements: List[ActivityPlacement] = []
    study_days = 0

    for offset, day in enumerate(iter_days(config.start_date, config.end_date)):
        available = config.hours_for(day)
        if available <= 0 or day in exam_days:
            continue

        milestone = resolve_milestone(day, exam_events)
        mode = draw_day_mode(config.balance_ratio, rng)
        allocations = allocate_day(
            available,
            mode,
            milestone,
            config.resources,
            offset in emphasis_offsets,
        )
        logger.debug(
            "%s: %sh available, mode=%s milestone=%s -> %s",
            day.isoformat(),
            available,
            mode.value,
            milestone,
            [(entry.activity_name, entry.hours) for entry in allocations],
        )
        study_days += 1
        for entry in allocations:
            placements.append(
                ActivityPlacement(
                    scheduled_date=day,
                    activity_title=entry.activity_name,
                    activity_text=activity_description(entry.activity_name),
                    hours=entry.hours,
                    activity_type=get_activity(entry.activity_name).kind,
                )
            )

    logger.info(
        "Generated %s placements across %s study days (%s to %s, %s emphasis days)",
        len(placements),
        study_days,
        config.start_date.isoformat(),
        config.end_date.isoformat(),
        len(emphasis_offsets),
    )
    return placements


__all__ = ["generate_schedule", "iter_days"]
