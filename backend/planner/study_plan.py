"""Study plan models and the plan store facade."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .activity_catalog import ActivityKind
from .db.session import session_scope

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
NOT_STARTED = "Not Started"


if TYPE_CHECKING:
    from .repositories.study_plans import StudyPlanRepository


def _repo() -> "StudyPlanRepository":
    from .repositories.study_plans import study_plans as repository

    return repository


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


class ResourceFlags(BaseModel):
    """Study resources the learner has access to.

    Wire keys follow the client payload: ``adaptive`` (Adaptive Tutoring Suite),
    ``ankigame`` (Anki Clinic), ``anki`` (own Anki deck).
    """

    adaptive: bool = False
    ankigame: bool = False
    anki: bool = False
    cars: bool = False
    uworld: bool = False
    aamc: bool = False

    model_config = {"extra": "ignore"}


class ExamEvent(BaseModel):
    """A full-length exam already on the learner's calendar."""

    scheduled_date: date
    label: str = "Full-Length Exam"


class ChecklistItem(BaseModel):
    text: str
    completed: bool = False


class PlanConfig(BaseModel):
    """Inputs for one generation run over an inclusive date range."""

    start_date: date
    end_date: date
    hours_per_weekday: Dict[str, int] = Field(default_factory=dict)
    resources: ResourceFlags = Field(default_factory=ResourceFlags)
    balance_ratio: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("hours_per_weekday")
    @classmethod
    def _check_hours(cls, value: Dict[str, int]) -> Dict[str, int]:
        for name, hours in value.items():
            if name not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday '{name}'")
            if hours < 0:
                raise ValueError(f"Hours for {name} cannot be negative")
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "PlanConfig":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    def hours_for(self, day: date) -> int:
        return self.hours_per_weekday.get(weekday_name(day), 0)

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


class ActivityPlacement(BaseModel):
    """One scheduled activity on one calendar date."""

    scheduled_date: date
    activity_title: str
    activity_text: str = ""
    hours: float = Field(gt=0)
    activity_type: ActivityKind
    status: str = NOT_STARTED
    source: Literal["generated"] = "generated"
    link: str = ""
    tasks: List[ChecklistItem] = Field(default_factory=list)


class CalendarActivity(BaseModel):
    """Stored calendar entry: generated placements, exams, and manual entries."""

    id: str
    scheduled_date: date
    activity_title: str
    activity_text: str = ""
    hours: float
    activity_type: str
    status: str = NOT_STARTED
    link: str = ""
    tasks: List[ChecklistItem] = Field(default_factory=list)
    source: str = "generated"


class StudyPlan(BaseModel):
    """Persisted plan configuration for one learner."""

    id: Optional[str] = None
    username: str
    exam_date: date
    resources: ResourceFlags = Field(default_factory=ResourceFlags)
    hours_per_day: Dict[str, str] = Field(default_factory=dict)
    selected_balance: str = "50-50"
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def normalize_username(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Username cannot be empty.")
    return normalized


class StudyPlanStore:
    """Facade over the database repository; one session per call.

    Generation runs for the same plan are serialized through a per-plan lock so
    their delete and insert phases never interleave.
    """

    def __init__(self) -> None:
        self._plan_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def plan_lock(self, username: str) -> threading.Lock:
        normalized = normalize_username(username)
        with self._locks_guard:
            lock = self._plan_locks.get(normalized)
            if lock is None:
                lock = self._plan_locks[normalized] = threading.Lock()
            return lock

    def get_plan(self, username: str) -> Optional[StudyPlan]:
        with session_scope(commit=False) as session:
            return _repo().get_plan(session, username)

    def upsert_plan(self, plan: StudyPlan) -> StudyPlan:
        with session_scope() as session:
            return _repo().upsert_plan(session, plan)

    def delete_plan(self, username: str) -> bool:
        with session_scope() as session:
            deleted = _repo().delete_plan(session, username)
        with self._locks_guard:
            self._plan_locks.pop(normalize_username(username), None)
        return deleted

    def get_activity(self, username: str, activity_id: str) -> CalendarActivity:
        with session_scope(commit=False) as session:
            return _repo().get_activity(session, username, activity_id)

    def add_exam(self, username: str, exam: ExamEvent, *, hours: float = 8.0) -> CalendarActivity:
        with session_scope() as session:
            return _repo().add_exam(session, username, exam, hours=hours)

    def list_exam_events(self, username: str) -> List[ExamEvent]:
        with session_scope(commit=False) as session:
            return _repo().list_exam_events(session, username)

    def list_activities(
        self,
        username: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[CalendarActivity]:
        with session_scope(commit=False) as session:
            return _repo().list_activities(session, username, start=start, end=end)

    def replace_generated_activities(
        self,
        username: str,
        start: date,
        placements: Iterable[ActivityPlacement],
    ) -> int:
        """Delete non-exam activities from ``start`` onward and insert ``placements``.

        Both phases commit together or not at all.
        """
        placements = list(placements)
        logger.debug("Replacing activities for %s from %s with %s placements", username, start, len(placements))
        with self.plan_lock(username):
            with session_scope() as session:
                return _repo().replace_generated_activities(session, username, start, placements)

    def replace_activity(
        self,
        username: str,
        activity_id: str,
        *,
        activity_title: str,
        activity_text: str,
        hours: float,
        activity_type: str,
        tasks: List[ChecklistItem],
        scope: Literal["single", "future"],
    ) -> int:
        with session_scope() as session:
            return _repo().replace_activity(
                session,
                username,
                activity_id,
                activity_title=activity_title,
                activity_text=activity_text,
                hours=hours,
                activity_type=activity_type,
                tasks=tasks,
                scope=scope,
            )


plan_store = StudyPlanStore()

__all__ = [
    "ActivityPlacement",
    "CalendarActivity",
    "ChecklistItem",
    "ExamEvent",
    "NOT_STARTED",
    "PlanConfig",
    "ResourceFlags",
    "StudyPlan",
    "StudyPlanStore",
    "WEEKDAY_NAMES",
    "normalize_username",
    "plan_store",
    "weekday_name",
]
