"""Repository helpers for roster, project plan, worklog and evaluation data."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from resplan.models.entities import (
    Evaluation,
    EvaluationScore,
    MonthlyPlanEntry,
    Person,
    Project,
    ProjectAssignment,
    ProjectRelease,
    ProjectStatus,
    ProjectType,
    Worklog,
)


class PlanningRepository:
    """Persistence operations used by planning, workload and matrix services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- People ----------
    def list_people(self, *, active_only: bool = False) -> list[Person]:
        query = select(Person)
        if active_only:
            query = query.where(Person.active.is_(True))
        return self.db.scalars(query.order_by(Person.sort_order.asc(), Person.display_name.asc())).all()

    def get_person(self, person_id: UUID) -> Person | None:
        return self.db.scalar(select(Person).where(Person.id == person_id))

    def get_person_by_code(self, code: str) -> Person | None:
        return self.db.scalar(select(Person).where(Person.code == code))

    def get_people(self, person_ids: Iterable[UUID]) -> dict[UUID, Person]:
        ids = list(person_ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(Person).where(Person.id.in_(ids))).all()
        return {row.id: row for row in rows}

    def add_person(self, person: Person) -> Person:
        self.db.add(person)
        self.db.flush()
        return person

    # ---------- Projects ----------
    def list_projects(self, *, include_archived: bool = True) -> list[Project]:
        query = select(Project)
        if not include_archived:
            query = query.where(Project.status == ProjectStatus.ACTIVE)
        return self.db.scalars(query.order_by(Project.sort_order.asc(), Project.code.asc())).all()

    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def get_project_by_code(self, code: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.code == code))

    def get_projects(self, project_ids: Iterable[UUID]) -> dict[UUID, Project]:
        ids = list(project_ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(Project).where(Project.id.in_(ids))).all()
        return {row.id: row for row in rows}

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    # ---------- Assignments ----------
    def list_assignments(self, project_id: UUID) -> list[ProjectAssignment]:
        return self.db.scalars(
            select(ProjectAssignment)
            .where(ProjectAssignment.project_id == project_id)
            .order_by(ProjectAssignment.sequence_no.asc())
        ).all()

    def list_assignments_for_projects(self, project_ids: Iterable[UUID]) -> list[ProjectAssignment]:
        ids = list(project_ids)
        if not ids:
            return []
        return self.db.scalars(
            select(ProjectAssignment)
            .where(ProjectAssignment.project_id.in_(ids))
            .order_by(ProjectAssignment.project_id.asc(), ProjectAssignment.sequence_no.asc())
        ).all()

    def list_projects_for_person(self, person_id: UUID) -> list[Project]:
        return self.db.scalars(
            select(Project)
            .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
            .where(ProjectAssignment.person_id == person_id)
            .order_by(Project.sort_order.asc(), Project.code.asc())
        ).all()

    def replace_assignments(self, project_id: UUID, person_ids: list[UUID]) -> list[ProjectAssignment]:
        self.db.execute(delete(ProjectAssignment).where(ProjectAssignment.project_id == project_id))
        rows = [
            ProjectAssignment(project_id=project_id, person_id=person_id, sequence_no=index)
            for index, person_id in enumerate(person_ids, start=1)
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    # ---------- Monthly plan ----------
    def list_plan_entries(self, project_id: UUID) -> list[MonthlyPlanEntry]:
        return self.db.scalars(
            select(MonthlyPlanEntry)
            .where(MonthlyPlanEntry.project_id == project_id)
            .order_by(MonthlyPlanEntry.month_start.asc())
        ).all()

    def list_plan_entries_between(
        self,
        *,
        from_month: date,
        to_month: date,
        person_id: UUID | None = None,
    ) -> list[MonthlyPlanEntry]:
        query = select(MonthlyPlanEntry).where(
            and_(
                MonthlyPlanEntry.month_start >= from_month,
                MonthlyPlanEntry.month_start <= to_month,
            )
        )
        if person_id is not None:
            query = query.where(MonthlyPlanEntry.person_id == person_id)
        return self.db.scalars(query.order_by(MonthlyPlanEntry.month_start.asc())).all()

    def get_plan_entry(self, project_id: UUID, person_id: UUID, month_start: date) -> MonthlyPlanEntry | None:
        return self.db.scalar(
            select(MonthlyPlanEntry).where(
                and_(
                    MonthlyPlanEntry.project_id == project_id,
                    MonthlyPlanEntry.person_id == person_id,
                    MonthlyPlanEntry.month_start == month_start,
                )
            )
        )

    def add_plan_entry(self, entry: MonthlyPlanEntry) -> MonthlyPlanEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_plan_entry(self, entry: MonthlyPlanEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    # ---------- Releases ----------
    def list_releases(self, project_id: UUID) -> list[ProjectRelease]:
        return self.db.scalars(
            select(ProjectRelease)
            .where(ProjectRelease.project_id == project_id)
            .order_by(ProjectRelease.due_date.asc(), ProjectRelease.name.asc())
        ).all()

    def list_releases_due_between(
        self,
        *,
        from_date: date,
        to_date: date | None = None,
        project_ids: Iterable[UUID] | None = None,
    ) -> list[ProjectRelease]:
        query = select(ProjectRelease).where(ProjectRelease.due_date >= from_date)
        if to_date is not None:
            query = query.where(ProjectRelease.due_date <= to_date)
        if project_ids is not None:
            query = query.where(ProjectRelease.project_id.in_(list(project_ids)))
        return self.db.scalars(query.order_by(ProjectRelease.due_date.asc(), ProjectRelease.name.asc())).all()

    def add_release(self, release: ProjectRelease) -> ProjectRelease:
        self.db.add(release)
        self.db.flush()
        return release

    # ---------- Worklogs ----------
    def list_worklogs(
        self,
        *,
        from_date: date,
        to_date: date,
        person_id: UUID | None = None,
    ) -> list[Worklog]:
        query = select(Worklog).where(and_(Worklog.work_date >= from_date, Worklog.work_date <= to_date))
        if person_id is not None:
            query = query.where(Worklog.person_id == person_id)
        return self.db.scalars(query.order_by(Worklog.work_date.asc(), Worklog.created_at.asc())).all()

    def get_worklog(self, worklog_id: UUID) -> Worklog | None:
        return self.db.scalar(select(Worklog).where(Worklog.id == worklog_id))

    def add_worklog(self, worklog: Worklog) -> Worklog:
        self.db.add(worklog)
        self.db.flush()
        return worklog

    def sum_actual_hours_by_person_project(
        self,
        *,
        from_date: date,
        to_date: date,
    ) -> dict[tuple[UUID, UUID], Decimal]:
        rows = self.db.execute(
            select(Worklog.person_id, Worklog.project_id, func.sum(Worklog.actual_hours))
            .where(and_(Worklog.work_date >= from_date, Worklog.work_date <= to_date))
            .group_by(Worklog.person_id, Worklog.project_id)
        ).all()
        return {(person_id, project_id): Decimal(total or 0) for person_id, project_id, total in rows}

    def direct_project_ids(self) -> set[UUID]:
        return set(self.db.scalars(select(Project.id).where(Project.project_type == ProjectType.DIRECT)).all())

    # ---------- Evaluations ----------
    def get_evaluation(self, person_id: UUID, month_start: date) -> Evaluation | None:
        return self.db.scalar(
            select(Evaluation).where(
                and_(Evaluation.person_id == person_id, Evaluation.month_start == month_start)
            )
        )

    def list_evaluations(self, person_id: UUID, *, from_month: date, to_month: date) -> list[Evaluation]:
        return self.db.scalars(
            select(Evaluation)
            .where(
                and_(
                    Evaluation.person_id == person_id,
                    Evaluation.month_start >= from_month,
                    Evaluation.month_start <= to_month,
                )
            )
            .order_by(Evaluation.month_start.asc())
        ).all()

    def list_scores(self, evaluation_id: UUID) -> list[EvaluationScore]:
        return self.db.scalars(
            select(EvaluationScore).where(EvaluationScore.evaluation_id == evaluation_id)
        ).all()

    def add_evaluation(self, evaluation: Evaluation) -> Evaluation:
        self.db.add(evaluation)
        self.db.flush()
        return evaluation

    def replace_scores(self, evaluation_id: UUID, scores: list[EvaluationScore]) -> list[EvaluationScore]:
        self.db.execute(delete(EvaluationScore).where(EvaluationScore.evaluation_id == evaluation_id))
        self.db.add_all(scores)
        self.db.flush()
        return scores
