"""ORM entities for the resource planning schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from resplan.db.base import Base


class ProjectType(str, enum.Enum):
    PROJECT = "project"
    DIRECT = "direct"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class WorklogStatus(str, enum.Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"


class WorklogSource(str, enum.Enum):
    MANUAL = "manual"
    JIRA = "jira"
    CALENDAR = "calendar"


class EvaluationStatus(str, enum.Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> SQLEnum:
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Person(Base):
    __tablename__ = "people"
    __table_args__ = (Index("ix_people_sort_order", "sort_order"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    role_title: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_projects_date_range"),
        Index("ix_projects_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_type: Mapped[ProjectType] = mapped_column(
        _enum_column(ProjectType, "project_type"),
        nullable=False,
        default=ProjectType.PROJECT,
    )
    status: Mapped[ProjectStatus] = mapped_column(
        _enum_column(ProjectStatus, "project_status"),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#3B82F6")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    plan_doc_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan_doc_version: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class ProjectAssignment(Base):
    __tablename__ = "project_assignments"
    __table_args__ = (
        Index("ix_project_assignments_project_id", "project_id"),
        Index("ix_project_assignments_person_id", "person_id"),
        UniqueConstraint("project_id", "person_id", name="uq_project_assignments_project_person"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    person_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("people.id"), nullable=False)
    sequence_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MonthlyPlanEntry(Base):
    __tablename__ = "monthly_plan_entries"
    __table_args__ = (
        CheckConstraint("planned_mm >= 0", name="ck_monthly_plan_planned_mm_non_negative"),
        Index("ix_monthly_plan_project_month", "project_id", "month_start"),
        Index("ix_monthly_plan_person_month", "person_id", "month_start"),
        UniqueConstraint(
            "project_id",
            "person_id",
            "month_start",
            name="uq_monthly_plan_project_person_month",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    person_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("people.id"), nullable=False)
    month_start: Mapped[date] = mapped_column(Date, nullable=False)
    planned_mm: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0.00"))


class ProjectRelease(Base):
    __tablename__ = "project_releases"
    __table_args__ = (
        CheckConstraint("total_tickets >= 0", name="ck_project_releases_total_non_negative"),
        CheckConstraint("closed_tickets >= 0", name="ck_project_releases_closed_non_negative"),
        CheckConstraint("closed_tickets <= total_tickets", name="ck_project_releases_closed_within_total"),
        Index("ix_project_releases_project_due", "project_id", "due_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_tickets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    closed_tickets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    late_days: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Worklog(Base):
    __tablename__ = "worklogs"
    __table_args__ = (
        CheckConstraint("planned_hours >= 0 AND planned_hours <= 24", name="ck_worklogs_planned_hours_range"),
        CheckConstraint("actual_hours >= 0 AND actual_hours <= 24", name="ck_worklogs_actual_hours_range"),
        Index("ix_worklogs_person_date", "person_id", "work_date"),
        Index("ix_worklogs_project_date", "project_id", "work_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    person_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("people.id"), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    task: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    planned_hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    actual_hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    status: Mapped[WorklogStatus] = mapped_column(
        _enum_column(WorklogStatus, "worklog_status"),
        nullable=False,
        default=WorklogStatus.DRAFT,
    )
    source: Mapped[WorklogSource] = mapped_column(
        _enum_column(WorklogSource, "worklog_source"),
        nullable=False,
        default=WorklogSource.MANUAL,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Evaluation(Base):
    __tablename__ = "evaluations"
    __table_args__ = (
        UniqueConstraint("person_id", "month_start", name="uq_evaluations_person_month"),
        Index("ix_evaluations_person_month", "person_id", "month_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    person_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("people.id"), nullable=False)
    month_start: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[EvaluationStatus] = mapped_column(
        _enum_column(EvaluationStatus, "evaluation_status"),
        nullable=False,
        default=EvaluationStatus.DRAFT,
    )
    metrics: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    final_comment: Mapped[str] = mapped_column(String(8000), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class EvaluationScore(Base):
    __tablename__ = "evaluation_scores"
    __table_args__ = (
        CheckConstraint("score >= 1 AND score <= 5", name="ck_evaluation_scores_score_range"),
        UniqueConstraint("evaluation_id", "criterion_key", name="uq_evaluation_scores_evaluation_criterion"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    evaluation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("evaluations.id"), nullable=False
    )
    criterion_key: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False)
    comment: Mapped[str] = mapped_column(String(4000), nullable=False, default="")
