"""Study plan REST endpoints surfaced to the web client."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Literal, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from .activity_catalog import (
    EXAM_ACTIVITY_TYPE,
    activity_description,
    default_duration,
    get_activity,
    is_catalog_activity,
)
from .checklists import ChecklistResolver, checklist_resolver
from .errors import DependencyError, PlanNotFoundError, PlanValidationError, StudyPlanError
from .study_plan import (
    CalendarActivity,
    ChecklistItem,
    ExamEvent,
    ResourceFlags,
    StudyPlan,
    StudyPlanStore,
    plan_store,
)
from .task_generation import GenerateTasksRequest, regenerate_study_tasks
from .telemetry import emit_event

router = APIRouter(prefix="/api/study-plans", tags=["study-plans"])
checklist_router = APIRouter(prefix="/api/checklists", tags=["checklists"])
logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (PlanValidationError, status.HTTP_400_BAD_REQUEST),
    (PlanNotFoundError, status.HTTP_404_NOT_FOUND),
    (DependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def get_plan_store() -> StudyPlanStore:
    return plan_store


def get_checklist_resolver() -> ChecklistResolver:
    return checklist_resolver


def _raise_http(exc: StudyPlanError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=exc.to_payload()) from exc
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.to_payload()) from exc


class PlanUpsertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_date: date = Field(..., alias="examDate")
    resources: ResourceFlags = Field(default_factory=ResourceFlags)
    hours_per_day: Dict[str, str] = Field(default_factory=dict, alias="hoursPerDay")
    selected_balance: str = Field(default="50-50", alias="selectedBalance")


class ExamRequest(BaseModel):
    scheduled_date: date = Field(..., alias="date")
    label: str = Field(default="Full-Length Exam", min_length=1, max_length=128)
    hours: float = Field(default=8.0, gt=0, le=12)

    model_config = ConfigDict(populate_by_name=True)


class ReplaceActivityRequest(BaseModel):
    activity_title: str = Field(..., min_length=1, alias="newActivity")
    scope: Literal["single", "future"] = "single"

    model_config = ConfigDict(populate_by_name=True)


class ActivityListPayload(BaseModel):
    username: str
    activities: List[CalendarActivity] = Field(default_factory=list)


class ChecklistPayload(BaseModel):
    activity_name: str
    tasks: List[ChecklistItem] = Field(default_factory=list)


@router.put("/{username}", response_model=StudyPlan, status_code=status.HTTP_200_OK)
def upsert_study_plan(
    username: str,
    payload: PlanUpsertRequest,
    store: StudyPlanStore = Depends(get_plan_store),
) -> StudyPlan:
    try:
        plan = StudyPlan(
            username=username,
            exam_date=payload.exam_date,
            resources=payload.resources,
            hours_per_day={key: str(value) for key, value in payload.hours_per_day.items()},
            selected_balance=payload.selected_balance,
        )
        return store.upsert_plan(plan)
    except ValueError as exc:
        _raise_http(PlanValidationError(str(exc)))


@router.delete("/{username}", status_code=status.HTTP_204_NO_CONTENT)
def delete_study_plan(username: str, store: StudyPlanStore = Depends(get_plan_store)) -> Response:
    if not store.delete_plan(username):
        _raise_http(PlanNotFoundError(f"No study plan found for '{username}'."))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{username}/exams",
    response_model=CalendarActivity,
    status_code=status.HTTP_201_CREATED,
)
def schedule_exam(
    username: str,
    payload: ExamRequest,
    store: StudyPlanStore = Depends(get_plan_store),
) -> CalendarActivity:
    try:
        return store.add_exam(
            username,
            ExamEvent(scheduled_date=payload.scheduled_date, label=payload.label),
            hours=payload.hours,
        )
    except LookupError as exc:
        _raise_http(PlanNotFoundError(str(exc)))


@router.post("/{username}/generate-tasks", status_code=status.HTTP_201_CREATED)
async def generate_tasks(
    username: str,
    payload: Dict[str, Any] = Body(...),
    store: StudyPlanStore = Depends(get_plan_store),
    resolver: ChecklistResolver = Depends(get_checklist_resolver),
) -> Dict[str, Any]:
    try:
        request = GenerateTasksRequest.model_validate(payload)
    except ValueError as exc:
        _raise_http(PlanValidationError(f"Invalid generation request: {exc}"))
    try:
        summary = await regenerate_study_tasks(username, request, store=store, resolver=resolver)
    except StudyPlanError as exc:
        logger.info("Generation for %s rejected with %s", username, exc.code)
        _raise_http(exc)
    return {"success": True, **summary.model_dump(mode="json")}


@router.get(
    "/{username}/activities",
    response_model=ActivityListPayload,
    status_code=status.HTTP_200_OK,
)
def list_activities(
    username: str,
    start: Optional[date] = Query(default=None, description="First calendar date to include."),
    end: Optional[date] = Query(default=None, description="Last calendar date to include."),
    store: StudyPlanStore = Depends(get_plan_store),
) -> ActivityListPayload:
    try:
        activities = store.list_activities(username, start=start, end=end)
    except LookupError as exc:
        _raise_http(PlanNotFoundError(str(exc)))
    return ActivityListPayload(username=username, activities=activities)


@router.post(
    "/{username}/activities/{activity_id}/replace",
    status_code=status.HTTP_200_OK,
)
async def replace_activity(
    username: str,
    activity_id: str,
    payload: ReplaceActivityRequest,
    store: StudyPlanStore = Depends(get_plan_store),
    resolver: ChecklistResolver = Depends(get_checklist_resolver),
) -> Dict[str, Any]:
    if not is_catalog_activity(payload.activity_title):
        _raise_http(PlanValidationError(f"Unknown activity '{payload.activity_title}'."))
    definition = get_activity(payload.activity_title)
    try:
        current = await asyncio.to_thread(store.get_activity, username, activity_id)
    except LookupError as exc:
        _raise_http(PlanNotFoundError(str(exc)))
    if current.activity_type == EXAM_ACTIVITY_TYPE:
        _raise_http(PlanValidationError("Exam events cannot be replaced."))

    # The queue only advances once the target is known to be replaceable.
    tasks = await asyncio.to_thread(resolver.next_checklist, definition.name)
    try:
        updated = await asyncio.to_thread(
            store.replace_activity,
            username,
            activity_id,
            activity_title=definition.name,
            activity_text=activity_description(definition.name),
            hours=default_duration(definition.name),
            activity_type=definition.kind.value,
            tasks=tasks,
            scope=payload.scope,
        )
    except LookupError as exc:
        _raise_http(PlanNotFoundError(str(exc)))
    except ValueError as exc:
        _raise_http(PlanValidationError(str(exc)))
    emit_event(
        "study_plan_activity_replaced",
        username=username,
        activity_id=activity_id,
        activity_title=definition.name,
        scope=payload.scope,
        updated=updated,
    )
    return {"success": True, "updated": updated, "scope": payload.scope}


@checklist_router.get("", response_model=ChecklistPayload, status_code=status.HTTP_200_OK)
def next_checklist(
    activity_name: str = Query(..., min_length=1),
    resolver: ChecklistResolver = Depends(get_checklist_resolver),
) -> ChecklistPayload:
    return ChecklistPayload(activity_name=activity_name, tasks=resolver.next_checklist(activity_name))


__all__ = ["checklist_router", "get_checklist_resolver", "get_plan_store", "router"]
