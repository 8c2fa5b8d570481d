"""Resolve which full-length-exam phase a study day falls in."""

from __future__ import annotations

from bisect import bisect_right
from datetime import date
from typing import Sequence

from .study_plan import ExamEvent

# From this phase on, practice days lead with official AAMC material.
LATE_PHASE_MILESTONE = 3


def resolve_milestone(day: date, exam_events: Sequence[ExamEvent]) -> int:
    """Return the number of exam events on or before ``day``.

    Phase 0 is everything before the first exam; phase ``i`` covers
    ``[exam[i-1], exam[i])`` and the last phase is open-ended.
    """
    if not exam_events:
        return 0
    ordered = sorted(event.scheduled_date for event in exam_events)
    return bisect_right(ordered, day)


def is_late_phase(milestone: int) -> bool:
    return milestone >= LATE_PHASE_MILESTONE


__all__ = ["LATE_PHASE_MILESTONE", "is_late_phase", "resolve_milestone"]
