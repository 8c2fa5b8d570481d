"""ORM models backing the study plan store."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class StudyPlanModel(TimestampMixin, Base):
    __tablename__ = "study_plans"
    __table_args__ = (Index("ix_study_plans_username", "username", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    resources: Mapped[dict[str, bool]] = mapped_column(JSONType, default=dict, nullable=False)
    hours_per_day: Mapped[dict[str, str]] = mapped_column(JSONType, default=dict, nullable=False)
    selected_balance: Mapped[str] = mapped_column(String(16), default="50-50", nullable=False)

    activities: Mapped[list["CalendarActivityModel"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan"
    )


class CalendarActivityModel(Base):
    __tablename__ = "calendar_activities"
    __table_args__ = (
        Index("ix_calendar_activities_plan_date", "plan_id", "scheduled_date"),
        Index("ix_calendar_activities_type", "activity_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    activity_title: Mapped[str] = mapped_column(String(128), nullable=False)
    activity_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    hours: Mapped[float] = mapped_column(Float, nullable=False)
    activity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="Not Started", nullable=False)
    link: Mapped[str] = mapped_column(Text, default="", nullable=False)
    tasks: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    source: Mapped[str] = mapped_column(String(16), default="generated", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    plan: Mapped[StudyPlanModel] = relationship(back_populates="activities")


class ChecklistQueueModel(Base):
    __tablename__ = "checklist_queues"

    activity_name: Mapped[str] = mapped_column(String(128), primary_key=True)
    pending: Mapped[list[list[dict]]] = mapped_column(JSONType, default=list, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class PersistenceAuditEventModel(Base):
    __tablename__ = "persistence_audit_events"
    __table_args__ = (Index("ix_persistence_audit_events_plan", "plan_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


__all__ = [
    "CalendarActivityModel",
    "ChecklistQueueModel",
    "PersistenceAuditEventModel",
    "StudyPlanModel",
]
