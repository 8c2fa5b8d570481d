"""Generation service: validation, replace-range persistence, and checklist fallback."""

from __future__ import annotations

import asyncio
import threading
from collections import Counter
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

import pytest
from sqlalchemy.exc import OperationalError

from planner.activity_catalog import ACTIVITY_CATALOG, EXAM_ACTIVITY_TYPE, UWORLD, ActivityKind
from planner.checklists import ChecklistResolver
from planner.errors import DependencyError, PlanNotFoundError, PlanValidationError
from planner.repositories.study_plans import StudyPlanRepository
from planner.study_plan import ActivityPlacement, ChecklistItem, ExamEvent, StudyPlan, StudyPlanStore
from planner.task_generation import (
    GenerateTasksRequest,
    attach_checklists,
    hours_by_weekday,
    parse_hours,
    regenerate_study_tasks,
)

USERNAME = "premed-learner"


def _payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "examDate": "2025-01-18",
        "resources": {"adaptive": True, "ankigame": True, "uworld": True, "aamc": True, "cars": True},
        "hoursPerDay": {
            "Monday": "4",
            "Tuesday": "4",
            "Wednesday": "3",
            "Thursday": "4",
            "Friday": "2",
            "Saturday": "6",
            "Sunday": "0",
        },
        "selectedBalance": "50-50",
        "startDate": "2024-11-01",
        "endDate": "2024-11-14",
        "seed": 17,
    }
    payload.update(overrides)
    return payload


def _create_plan(store: StudyPlanStore) -> None:
    store.upsert_plan(StudyPlan(username=USERNAME, exam_date=date(2025, 1, 18)))


def _run(store: StudyPlanStore, resolver: ChecklistResolver, **overrides: Any):
    request = GenerateTasksRequest.model_validate(_payload(**overrides))
    return asyncio.run(regenerate_study_tasks(USERNAME, request, store=store, resolver=resolver))


class _UntouchableStore(StudyPlanStore):
    def get_plan(self, username: str):  # type: ignore[override]
        raise AssertionError("store should not be consulted")


def test_parse_hours_reads_leading_digits() -> None:
    assert parse_hours("4") == 4
    assert parse_hours(" 3h") == 3
    assert parse_hours("2.5") == 2
    assert parse_hours("") == 0
    assert parse_hours("none") == 0
    assert parse_hours(5) == 5
    assert parse_hours(None) == 0


def test_hours_by_weekday_normalizes_names() -> None:
    hours = hours_by_weekday({"monday": "3", "SUNDAY": "1", "Someday": "9"})
    assert hours == {"Monday": 3, "Sunday": 1}


def test_missing_fields_are_reported_together() -> None:
    request = GenerateTasksRequest.model_validate({"startDate": "2024-11-01", "selectedBalance": " "})
    with pytest.raises(PlanValidationError) as excinfo:
        asyncio.run(regenerate_study_tasks(USERNAME, request, store=_UntouchableStore()))
    assert excinfo.value.missing_fields == ["examDate", "resources", "hoursPerDay", "selectedBalance", "endDate"]
    assert excinfo.value.to_payload()["code"] == "validation_error"


def test_end_before_start_is_rejected() -> None:
    request = GenerateTasksRequest.model_validate(_payload(startDate="2024-11-10", endDate="2024-11-01"))
    with pytest.raises(PlanValidationError):
        asyncio.run(regenerate_study_tasks(USERNAME, request, store=_UntouchableStore()))


def test_missing_plan_aborts_before_mutation(planner_db: Path) -> None:
    store = StudyPlanStore()
    with pytest.raises(PlanNotFoundError) as excinfo:
        _run(store, ChecklistResolver())
    assert excinfo.value.code == "not_found"
    assert store.get_plan(USERNAME) is None


def test_generation_persists_placements_with_checklists(planner_db: Path, telemetry_events) -> None:
    store = StudyPlanStore()
    _create_plan(store)
    store.add_exam(USERNAME, ExamEvent(scheduled_date=date(2024, 11, 5)))

    summary = _run(store, ChecklistResolver())

    activities = store.list_activities(USERNAME)
    generated = [activity for activity in activities if activity.activity_type != EXAM_ACTIVITY_TYPE]
    exams = [activity for activity in activities if activity.activity_type == EXAM_ACTIVITY_TYPE]
    assert summary.placement_count == len(generated) > 0
    assert summary.exam_days_skipped == 1
    assert len(exams) == 1
    assert all(activity.scheduled_date != date(2024, 11, 5) for activity in generated)
    assert all(activity.scheduled_date.weekday() != 6 for activity in generated)
    assert all(activity.tasks for activity in generated)
    assert {activity.activity_type for activity in generated} <= {kind.value for kind in ActivityKind}

    events = [event for event in telemetry_events if event.name == "study_plan_generation"]
    assert events and events[-1].payload["status"] == "success"
    assert events[-1].payload["placement_count"] == summary.placement_count


def test_regeneration_replaces_overlapping_range(planner_db: Path) -> None:
    store = StudyPlanStore()
    resolver = ChecklistResolver()
    _create_plan(store)
    store.add_exam(USERNAME, ExamEvent(scheduled_date=date(2024, 11, 12)))

    _run(store, resolver)
    before = store.list_activities(USERNAME, end=date(2024, 11, 6))
    second = _run(store, resolver, startDate="2024-11-07", endDate="2024-11-20", seed=99)

    after = store.list_activities(USERNAME)
    assert [a.id for a in after if a.scheduled_date <= date(2024, 11, 6)] == [a.id for a in before]
    regenerated = [
        a for a in after if a.scheduled_date >= date(2024, 11, 7) and a.activity_type != EXAM_ACTIVITY_TYPE
    ]
    assert len(regenerated) == second.placement_count
    per_day = Counter((a.scheduled_date, a.activity_title) for a in after)
    assert max(per_day.values()) == 1
    assert any(a.activity_type == EXAM_ACTIVITY_TYPE for a in after)


def test_activities_beyond_new_range_are_cleared(planner_db: Path) -> None:
    store = StudyPlanStore()
    _create_plan(store)
    stale = ActivityPlacement(
        scheduled_date=date(2024, 11, 20),
        activity_title=UWORLD,
        hours=1,
        activity_type=ActivityKind.PRACTICE,
    )
    store.replace_generated_activities(USERNAME, date(2024, 11, 20), [stale])

    _run(store, ChecklistResolver(), startDate="2024-11-15", endDate="2024-11-18")

    assert store.list_activities(USERNAME, start=date(2024, 11, 19)) == []


def test_persist_failure_commits_nothing(planner_db: Path, monkeypatch: pytest.MonkeyPatch, telemetry_events) -> None:
    store = StudyPlanStore()
    resolver = ChecklistResolver()
    _create_plan(store)
    _run(store, resolver)
    before = store.list_activities(USERNAME)

    def explode(self, session, plan_id, event_type, payload) -> None:
        if event_type == "generated_activities_replaced":
            raise OperationalError("INSERT INTO persistence_audit_events", {}, Exception("disk full"))

    monkeypatch.setattr(StudyPlanRepository, "_record_audit", explode)

    with pytest.raises(DependencyError) as excinfo:
        _run(store, resolver, seed=5)

    assert excinfo.value.dependency == "plan_store"
    assert excinfo.value.to_payload()["code"] == "dependency_error"
    assert [a.id for a in store.list_activities(USERNAME)] == [a.id for a in before]
    generation_events = [event for event in telemetry_events if event.name == "study_plan_generation"]
    assert generation_events[-1].payload["status"] == "error"


class _UnreachableStore(StudyPlanStore):
    def __init__(self, failing_call: str) -> None:
        super().__init__()
        self._failing_call = failing_call

    def get_plan(self, username: str):  # type: ignore[override]
        if self._failing_call == "get_plan":
            raise OperationalError("SELECT study_plans", {}, Exception("connection refused"))
        return StudyPlan(username=username, exam_date=date(2025, 1, 18))

    def list_exam_events(self, username: str):  # type: ignore[override]
        raise OperationalError("SELECT calendar_activities", {}, Exception("connection refused"))

    def replace_generated_activities(self, username, start, placements):  # type: ignore[override]
        raise AssertionError("nothing should be written")


@pytest.mark.parametrize("failing_call", ["get_plan", "list_exam_events"])
def test_plan_store_read_failure_is_dependency_error(failing_call: str, telemetry_events) -> None:
    with pytest.raises(DependencyError) as excinfo:
        _run(_UnreachableStore(failing_call), ChecklistResolver())

    assert excinfo.value.dependency == "plan_store"
    assert excinfo.value.to_payload()["code"] == "dependency_error"
    generation_events = [event for event in telemetry_events if event.name == "study_plan_generation"]
    assert generation_events[-1].payload["status"] == "error"
    assert generation_events[-1].payload["exception_type"] == "OperationalError"


def test_failed_persist_keeps_handed_out_checklists(planner_db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = StudyPlanStore()
    resolver = ChecklistResolver()
    _create_plan(store)
    names = [entry.name for entry in ACTIVITY_CATALOG]
    before = sum(resolver.pending_count(name) for name in names)

    def explode(self, session, plan_id, event_type, payload) -> None:
        raise OperationalError("INSERT INTO persistence_audit_events", {}, Exception("disk full"))

    monkeypatch.setattr(StudyPlanRepository, "_record_audit", explode)
    with pytest.raises(DependencyError):
        _run(store, resolver)

    assert store.list_activities(USERNAME) == []
    assert sum(resolver.pending_count(name) for name in names) < before


def _placement(day: int, title: str = UWORLD) -> ActivityPlacement:
    return ActivityPlacement(
        scheduled_date=date(2024, 11, day),
        activity_title=title,
        hours=1,
        activity_type=ActivityKind.PRACTICE,
    )


def test_attach_checklists_falls_back_per_placement() -> None:
    def lookup(name: str) -> List[ChecklistItem]:
        if name == UWORLD:
            raise ConnectionError("checklist store unreachable")
        return [ChecklistItem(text=f"Do {name}")]

    placements = [_placement(1), _placement(1, "AAMC Materials"), _placement(2)]
    result = asyncio.run(attach_checklists(placements, lookup, concurrency=2, retries=2))

    assert [p.tasks for p in result] == [[], [ChecklistItem(text="Do AAMC Materials")], []]
    assert [p.scheduled_date for p in result] == [p.scheduled_date for p in placements]


def test_attach_checklists_retries_then_succeeds() -> None:
    calls: List[str] = []

    def flaky(name: str) -> List[ChecklistItem]:
        calls.append(name)
        if len(calls) == 1:
            raise TimeoutError("slow store")
        return [ChecklistItem(text="Block")]

    result = asyncio.run(attach_checklists([_placement(1)], flaky, concurrency=1, retries=1))

    assert result[0].tasks == [ChecklistItem(text="Block")]
    assert len(calls) == 2


def test_attach_checklists_hands_out_queue_in_date_order() -> None:
    queue = [[ChecklistItem(text=f"Checklist {index}")] for index in range(3)]

    def dequeue(name: str) -> List[ChecklistItem]:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    placements = [_placement(1), _placement(2), _placement(3), _placement(4)]
    result = asyncio.run(attach_checklists(placements, dequeue, concurrency=4, retries=0))

    assert [p.tasks[0].text for p in result] == ["Checklist 0", "Checklist 1", "Checklist 2", "Checklist 2"]


def test_concurrent_replacements_leave_one_generated_set(planner_db: Path) -> None:
    store = StudyPlanStore()
    _create_plan(store)
    start = date(2024, 11, 1)
    batches = {
        title: [_placement(day, title) for day in range(1, 8)]
        for title in (UWORLD, "AAMC Materials")
    }
    barrier = threading.Barrier(len(batches))
    errors: List[BaseException] = []

    def replace(placements: List[ActivityPlacement]) -> None:
        try:
            barrier.wait()
            for _ in range(5):
                store.replace_generated_activities(USERNAME, start, placements)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=replace, args=(placements,)) for placements in batches.values()]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    activities = store.list_activities(USERNAME)
    assert len(activities) == 7
    assert len({activity.scheduled_date for activity in activities}) == 7
    assert len({activity.activity_title for activity in activities}) == 1


def test_deleting_a_plan_drops_its_lock(planner_db: Path) -> None:
    store = StudyPlanStore()
    _create_plan(store)
    store.replace_generated_activities(USERNAME, date(2024, 11, 1), [_placement(1)])
    assert USERNAME in store._plan_locks

    assert store.delete_plan(USERNAME) is True
    assert USERNAME not in store._plan_locks
