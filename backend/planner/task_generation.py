"""Regenerate a learner's study activities for a date range."""

from __future__ import annotations

import asyncio
import logging
import random
import re
import time
from collections import OrderedDict
from datetime import date
from typing import Callable, Dict, List, Optional, Union, cast

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from .checklists import ChecklistResolver, checklist_resolver
from .config import get_settings
from .day_classifier import balance_ratio
from .errors import DependencyError, PlanNotFoundError, PlanValidationError
from .schedule_generator import generate_schedule
from .study_plan import (
    WEEKDAY_NAMES,
    ActivityPlacement,
    ChecklistItem,
    PlanConfig,
    ResourceFlags,
    StudyPlanStore,
    plan_store,
)
from .telemetry import emit_event

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*[+]?(\d+)")

REQUIRED_FIELDS = (
    ("exam_date", "examDate"),
    ("resources", "resources"),
    ("hours_per_day", "hoursPerDay"),
    ("selected_balance", "selectedBalance"),
    ("end_date", "endDate"),
)


class GenerateTasksRequest(BaseModel):
    """Generation trigger payload in the client's camelCase wire format."""

    model_config = ConfigDict(populate_by_name=True)

    exam_date: Optional[date] = Field(default=None, alias="examDate")
    resources: Optional[ResourceFlags] = None
    hours_per_day: Optional[Dict[str, Union[str, int, float]]] = Field(default=None, alias="hoursPerDay")
    selected_balance: Optional[str] = Field(default=None, alias="selectedBalance")
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    seed: Optional[int] = None

    def missing_fields(self) -> List[str]:
        missing: List[str] = []
        for attribute, wire_name in REQUIRED_FIELDS:
            value = getattr(self, attribute)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(wire_name)
        return missing


class GenerationSummary(BaseModel):
    start_date: date
    end_date: date
    placement_count: int = Field(ge=0)
    study_days: int = Field(ge=0)
    total_hours: float = Field(ge=0)
    exam_days_skipped: int = Field(ge=0)
    seed: Optional[int] = None


def parse_hours(value: Union[str, int, float, None]) -> int:
    """Whole hours from a client value; unparseable input counts as a break day."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


def hours_by_weekday(raw: Dict[str, Union[str, int, float]]) -> Dict[str, int]:
    lookup = {name.lower(): name for name in WEEKDAY_NAMES}
    hours: Dict[str, int] = {}
    for key, value in raw.items():
        name = lookup.get(str(key).strip().lower())
        if name is None:
            logger.warning("Ignoring hours for unknown weekday %r", key)
            continue
        hours[name] = parse_hours(value)
    return hours


async def attach_checklists(
    placements: List[ActivityPlacement],
    lookup: Callable[[str], List[ChecklistItem]],
    *,
    concurrency: int = 4,
    retries: int = 1,
) -> List[ActivityPlacement]:
    """Resolve one checklist per placement.

    Lookups fan out across activity names, but placements sharing a name are
    resolved one after another in date order, so each receives its own queue
    entry. A lookup that keeps failing leaves that placement with no checklist.

    Each dequeue commits on its own. If the placements are never persisted the
    handed-out checklists stay consumed.
    """
    groups: "OrderedDict[str, List[int]]" = OrderedDict()
    for index, placement in enumerate(placements):
        groups.setdefault(placement.activity_title, []).append(index)

    resolved: List[Optional[List[ChecklistItem]]] = [None] * len(placements)
    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def _resolve_one(name: str) -> List[ChecklistItem]:
        for attempt in range(retries + 1):
            try:
                return await asyncio.to_thread(lookup, name)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Checklist lookup for %s failed (attempt %s/%s): %s",
                    name,
                    attempt + 1,
                    retries + 1,
                    exc,
                )
        return []

    async def _resolve_group(name: str, indexes: List[int]) -> None:
        async with semaphore:
            for index in indexes:
                resolved[index] = await _resolve_one(name)

    await asyncio.gather(*(_resolve_group(name, indexes) for name, indexes in groups.items()))
    return [
        placement.model_copy(update={"tasks": list(tasks or [])})
        for placement, tasks in zip(placements, resolved)
    ]


def _store_failure(username: str, started: float, exc: SQLAlchemyError, message: str) -> DependencyError:
    duration_ms = (time.perf_counter() - started) * 1000.0
    emit_event(
        "study_plan_generation",
        username=username,
        status="error",
        duration_ms=round(duration_ms, 2),
        placement_count=0,
        error=str(exc),
        exception_type=exc.__class__.__name__,
    )
    return DependencyError("plan_store", message)


async def regenerate_study_tasks(
    username: str,
    request: GenerateTasksRequest,
    *,
    store: StudyPlanStore = plan_store,
    resolver: ChecklistResolver = checklist_resolver,
    today: Optional[date] = None,
) -> GenerationSummary:
    """Replace every non-exam activity from the start date onward with a fresh schedule."""
    missing = request.missing_fields()
    if missing:
        raise PlanValidationError(
            f"Missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )
    end_date = cast(date, request.end_date)
    hours_per_day = cast(Dict[str, Union[str, int, float]], request.hours_per_day)
    start = request.start_date or today or date.today()
    if end_date < start:
        raise PlanValidationError("endDate must not precede startDate")

    started = time.perf_counter()
    try:
        plan = await asyncio.to_thread(store.get_plan, username)
        if plan is None:
            raise PlanNotFoundError(f"No study plan found for '{username}'.")
        exam_events = await asyncio.to_thread(store.list_exam_events, username)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load study plan for %s", username)
        raise _store_failure(username, started, exc, "Failed to load the study plan.") from exc

    config = PlanConfig(
        start_date=start,
        end_date=end_date,
        hours_per_weekday=hours_by_weekday(hours_per_day),
        resources=request.resources or ResourceFlags(),
        balance_ratio=balance_ratio(request.selected_balance or ""),
    )
    rng = random.Random(request.seed) if request.seed is not None else random.Random()
    placements = generate_schedule(config, exam_events, rng=rng)

    settings = get_settings()
    placements = await attach_checklists(
        placements,
        resolver.next_checklist,
        concurrency=settings.checklist_concurrency,
        retries=settings.checklist_retries,
    )

    try:
        await asyncio.to_thread(store.replace_generated_activities, username, start, placements)
    except LookupError as exc:
        raise PlanNotFoundError(str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist generated activities for %s", username)
        raise _store_failure(username, started, exc, "Failed to save the generated study plan.") from exc

    in_range_exams = {
        event.scheduled_date
        for event in exam_events
        if config.start_date <= event.scheduled_date <= config.end_date
    }
    summary = GenerationSummary(
        start_date=config.start_date,
        end_date=config.end_date,
        placement_count=len(placements),
        study_days=len({placement.scheduled_date for placement in placements}),
        total_hours=sum(placement.hours for placement in placements),
        exam_days_skipped=len(in_range_exams),
        seed=request.seed,
    )
    duration_ms = (time.perf_counter() - started) * 1000.0
    emit_event(
        "study_plan_generation",
        username=username,
        status="success",
        duration_ms=round(duration_ms, 2),
        placement_count=summary.placement_count,
        study_days=summary.study_days,
        total_hours=summary.total_hours,
        start_date=summary.start_date,
        end_date=summary.end_date,
    )
    return summary


__all__ = [
    "GenerateTasksRequest",
    "GenerationSummary",
    "attach_checklists",
    "hours_by_weekday",
    "parse_hours",
    "regenerate_study_tasks",
]
