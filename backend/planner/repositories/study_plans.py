"""Database-backed study plan repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..activity_catalog import EXAM_ACTIVITY_TYPE
from ..db.models import (
    CalendarActivityModel,
    PersistenceAuditEventModel,
    StudyPlanModel,
)
from ..study_plan import (
    NOT_STARTED,
    ActivityPlacement,
    CalendarActivity,
    ChecklistItem,
    ExamEvent,
    ResourceFlags,
    StudyPlan,
    normalize_username,
)


class StudyPlanRepository:
    """Session-scoped persistence helpers for plans and calendar activities."""

    def get_plan(self, session: Session, username: str) -> StudyPlan | None:
        model = self._find_plan(session, username)
        if model is None:
            return None
        return self._to_domain(model)

    def upsert_plan(self, session: Session, plan: StudyPlan) -> StudyPlan:
        normalized = normalize_username(plan.username)
        model = self._find_plan(session, normalized)
        if model is None:
            model = StudyPlanModel(username=normalized, exam_date=plan.exam_date)
            session.add(model)

        model.exam_date = plan.exam_date
        model.resources = plan.resources.model_dump(mode="json")
        model.hours_per_day = dict(plan.hours_per_day)
        model.selected_balance = plan.selected_balance
        model.updated_at = datetime.now(timezone.utc)
        session.flush()
        self._record_audit(session, model.id, "study_plan_upsert", {"username": normalized})
        return self._to_domain(model)

    def delete_plan(self, session: Session, username: str) -> bool:
        model = self._find_plan(session, username)
        if model is None:
            return False
        plan_id = model.id
        session.delete(model)
        session.flush()
        self._record_audit(session, None, "study_plan_delete", {"plan_id": plan_id})
        return True

    def add_exam(self, session: Session, username: str, exam: ExamEvent, *, hours: float) -> CalendarActivity:
        model = self._require_plan(session, username)
        record = CalendarActivityModel(
            plan_id=model.id,
            scheduled_date=exam.scheduled_date,
            activity_title=exam.label,
            activity_text=f"Take {exam.label}",
            hours=hours,
            activity_type=EXAM_ACTIVITY_TYPE,
            status=NOT_STARTED,
            tasks=[],
            source="exam",
        )
        session.add(record)
        session.flush()
        self._record_audit(
            session,
            model.id,
            "exam_scheduled",
            {"date": exam.scheduled_date.isoformat(), "label": exam.label},
        )
        return self._activity_to_domain(record)

    def list_exam_events(self, session: Session, username: str) -> List[ExamEvent]:
        model = self._require_plan(session, username)
        stmt = (
            select(CalendarActivityModel)
            .where(
                CalendarActivityModel.plan_id == model.id,
                CalendarActivityModel.activity_type == EXAM_ACTIVITY_TYPE,
            )
            .order_by(CalendarActivityModel.scheduled_date.asc(), CalendarActivityModel.created_at.asc())
        )
        return [
            ExamEvent(scheduled_date=record.scheduled_date, label=record.activity_title)
            for record in session.execute(stmt).scalars().all()
        ]

    def list_activities(
        self,
        session: Session,
        username: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[CalendarActivity]:
        model = self._require_plan(session, username)
        stmt = select(CalendarActivityModel).where(CalendarActivityModel.plan_id == model.id)
        if start is not None:
            stmt = stmt.where(CalendarActivityModel.scheduled_date >= start)
        if end is not None:
            stmt = stmt.where(CalendarActivityModel.scheduled_date <= end)
        stmt = stmt.order_by(
            CalendarActivityModel.scheduled_date.asc(),
            CalendarActivityModel.position.asc(),
            CalendarActivityModel.created_at.asc(),
        )
        return [self._activity_to_domain(record) for record in session.execute(stmt).scalars().all()]

    def replace_generated_activities(
        self,
        session: Session,
        username: str,
        start: date,
        placements: List[ActivityPlacement],
    ) -> int:
        model = self._require_plan(session, username)
        result = session.execute(
            delete(CalendarActivityModel).where(
                CalendarActivityModel.plan_id == model.id,
                CalendarActivityModel.scheduled_date >= start,
                CalendarActivityModel.activity_type != EXAM_ACTIVITY_TYPE,
            )
        )
        removed = result.rowcount or 0
        session.add_all(
            [
                CalendarActivityModel(
                    plan_id=model.id,
                    scheduled_date=placement.scheduled_date,
                    activity_title=placement.activity_title,
                    activity_text=placement.activity_text,
                    hours=placement.hours,
                    activity_type=placement.activity_type.value,
                    status=placement.status,
                    link=placement.link,
                    tasks=[task.model_dump(mode="json") for task in placement.tasks],
                    source=placement.source,
                    position=index,
                )
                for index, placement in enumerate(placements)
            ]
        )
        session.flush()
        self._record_audit(
            session,
            model.id,
            "generated_activities_replaced",
            {"start": start.isoformat(), "removed": removed, "inserted": len(placements)},
        )
        return len(placements)

    def get_activity(self, session: Session, username: str, activity_id: str) -> CalendarActivity:
        model = self._require_plan(session, username)
        return self._activity_to_domain(self._require_activity(session, model, activity_id))

    def replace_activity(
        self,
        session: Session,
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
        model = self._require_plan(session, username)
        original = self._require_activity(session, model, activity_id)
        if original.activity_type == EXAM_ACTIVITY_TYPE:
            raise ValueError("Exam events cannot be replaced.")

        values: Dict[str, Any] = {
            "activity_title": activity_title,
            "activity_text": activity_text,
            "hours": hours,
            "activity_type": activity_type,
            "tasks": [task.model_dump(mode="json") for task in tasks],
            "source": "generated",
        }
        target = update(CalendarActivityModel).values(**values)
        if scope == "single":
            target = target.where(CalendarActivityModel.id == original.id)
        else:
            target = target.where(
                CalendarActivityModel.plan_id == model.id,
                CalendarActivityModel.activity_title == original.activity_title,
                CalendarActivityModel.scheduled_date >= original.scheduled_date,
                CalendarActivityModel.activity_type != EXAM_ACTIVITY_TYPE,
            )
        result = session.execute(target.execution_options(synchronize_session=False))
        session.flush()
        updated = result.rowcount or 0
        self._record_audit(
            session,
            model.id,
            "activity_replaced",
            {
                "activity_id": activity_id,
                "from": original.activity_title,
                "to": activity_title,
                "scope": scope,
                "updated": updated,
            },
        )
        return updated

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_plan(self, session: Session, username: str) -> StudyPlanModel | None:
        normalized = normalize_username(username)
        stmt = select(StudyPlanModel).where(StudyPlanModel.username == normalized)
        return session.execute(stmt).scalar_one_or_none()

    def _require_plan(self, session: Session, username: str) -> StudyPlanModel:
        model = self._find_plan(session, username)
        if model is None:
            raise LookupError(f"No study plan found for '{username}'.")
        return model

    def _require_activity(self, session: Session, plan: StudyPlanModel, activity_id: str) -> CalendarActivityModel:
        stmt = select(CalendarActivityModel).where(
            CalendarActivityModel.plan_id == plan.id,
            CalendarActivityModel.id == activity_id,
        )
        record = session.execute(stmt).scalar_one_or_none()
        if record is None:
            raise LookupError(f"Activity '{activity_id}' not found for '{plan.username}'.")
        return record

    def _to_domain(self, model: StudyPlanModel) -> StudyPlan:
        return StudyPlan(
            id=model.id,
            username=model.username,
            exam_date=model.exam_date,
            resources=ResourceFlags.model_validate(model.resources or {}),
            hours_per_day=dict(model.hours_per_day or {}),
            selected_balance=model.selected_balance,
            updated_at=model.updated_at or datetime.now(timezone.utc),
        )

    def _activity_to_domain(self, record: CalendarActivityModel) -> CalendarActivity:
        return CalendarActivity(
            id=record.id,
            scheduled_date=record.scheduled_date,
            activity_title=record.activity_title,
            activity_text=record.activity_text or "",
            hours=record.hours,
            activity_type=record.activity_type,
            status=record.status,
            link=record.link or "",
            tasks=[ChecklistItem.model_validate(task) for task in record.tasks or []],
            source=record.source,
        )

    def _record_audit(self, session: Session, plan_id: Optional[str], event_type: str, payload: Dict[str, Any]) -> None:
        session.add(
            PersistenceAuditEventModel(
                plan_id=plan_id,
                event_type=event_type,
                payload=payload,
                actor="system",
            )
        )


study_plans = StudyPlanRepository()

__all__ = ["StudyPlanRepository", "study_plans"]
