"""Worklog capture and the weekly reconcile timesheet."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from resplan.models.entities import ProjectStatus, Worklog, WorklogSource, WorklogStatus
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.months import week_bounds

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
MAX_HOURS_PER_ENTRY = Decimal("24")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(slots=True)
class WorklogInput:
    person_id: UUID
    project_id: UUID
    work_date: date
    task: str = ""
    planned_hours: Decimal = ZERO
    actual_hours: Decimal = ZERO
    status: WorklogStatus = WorklogStatus.DRAFT
    source: WorklogSource = WorklogSource.MANUAL
    id: UUID | None = None


class WorklogService:
    """Daily plan/actual hour entries per person and project."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    @staticmethod
    def serialize_worklog(worklog: Worklog) -> dict[str, object]:
        return {
            "id": str(worklog.id),
            "person_id": str(worklog.person_id),
            "project_id": str(worklog.project_id),
            "work_date": worklog.work_date.isoformat(),
            "task": worklog.task,
            "planned_hours": str(_q2(worklog.planned_hours)),
            "actual_hours": str(_q2(worklog.actual_hours)),
            "status": worklog.status.value,
            "source": worklog.source.value,
        }

    def _ensure_person(self, person_id: UUID) -> None:
        if self.repo.get_person(person_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Person not found.")

    def list_worklogs(self, *, person_id: UUID, from_date: date, to_date: date) -> list[Worklog]:
        self._ensure_person(person_id)
        if to_date < from_date:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="to_date must be greater than or equal to from_date.",
            )
        return self.repo.list_worklogs(person_id=person_id, from_date=from_date, to_date=to_date)

    @staticmethod
    def _validate_hours(value: Decimal, field_name: str) -> Decimal:
        if value < ZERO or value > MAX_HOURS_PER_ENTRY:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} must be between 0 and 24.",
            )
        return _q2(value)

    def bulk_upsert(self, entries: list[WorklogInput]) -> list[Worklog]:
        people = self.repo.get_people({entry.person_id for entry in entries})
        projects = self.repo.get_projects({entry.project_id for entry in entries})

        saved: list[Worklog] = []
        now = datetime.utcnow()
        for payload in entries:
            planned = self._validate_hours(payload.planned_hours, "planned_hours")
            actual = self._validate_hours(payload.actual_hours, "actual_hours")
            if payload.person_id not in people:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="person_id must reference an existing person.",
                )
            if payload.project_id not in projects:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="project_id must reference an existing project.",
                )

            if payload.id is not None:
                worklog = self.repo.get_worklog(payload.id)
                if worklog is None:
                    self.db.rollback()
                    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worklog not found.")
                worklog.person_id = payload.person_id
                worklog.project_id = payload.project_id
                worklog.work_date = payload.work_date
                worklog.task = payload.task
                worklog.planned_hours = planned
                worklog.actual_hours = actual
                worklog.status = payload.status
                worklog.source = payload.source
                worklog.updated_at = now
            else:
                worklog = self.repo.add_worklog(
                    Worklog(
                        person_id=payload.person_id,
                        project_id=payload.project_id,
                        work_date=payload.work_date,
                        task=payload.task,
                        planned_hours=planned,
                        actual_hours=actual,
                        status=payload.status,
                        source=payload.source,
                        created_at=now,
                        updated_at=now,
                    )
                )
            saved.append(worklog)

        self.db.commit()
        for worklog in saved:
            self.db.refresh(worklog)
        return saved

    def weekly_timesheet(self, *, person_id: UUID, week_of: date) -> dict[str, object]:
        self._ensure_person(person_id)
        week_start, week_end = week_bounds(week_of)
        days = [week_start + timedelta(days=offset) for offset in range(7)]
        day_index = {day: index for index, day in enumerate(days)}

        worklogs = self.repo.list_worklogs(person_id=person_id, from_date=week_start, to_date=week_end)
        projects = self.repo.get_projects({worklog.project_id for worklog in worklogs})

        hours_by_project: dict[UUID, list[Decimal]] = {}
        for worklog in worklogs:
            daily = hours_by_project.setdefault(worklog.project_id, [ZERO] * 7)
            daily[day_index[worklog.work_date]] += worklog.actual_hours

        known = sorted(
            (projects[project_id] for project_id in hours_by_project if project_id in projects),
            key=lambda project: project.name,
        )
        rows = [
            {
                "project_id": str(project.id),
                "project_name": project.name,
                "archived": project.status is ProjectStatus.ARCHIVED,
                "daily_hours": [str(_q2(value)) for value in hours_by_project[project.id]],
                "weekly_total": str(_q2(sum(hours_by_project[project.id], ZERO))),
            }
            for project in known
        ]
        daily_totals = [
            sum((hours_by_project[project.id][index] for project in known), ZERO) for index in range(7)
        ]

        return {
            "person_id": str(person_id),
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
            "days": [day.isoformat() for day in days],
            "rows": rows,
            "daily_totals": [str(_q2(value)) for value in daily_totals],
            "weekly_total": str(_q2(sum(daily_totals, ZERO))),
        }
