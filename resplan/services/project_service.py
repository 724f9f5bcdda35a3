"""Application service for team roster, projects, assignees, plans and releases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resplan.models.entities import (
    MonthlyPlanEntry,
    Person,
    Project,
    ProjectRelease,
    ProjectStatus,
    ProjectType,
)
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.months import month_label, parse_month_label

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def parse_month_or_422(label: str, field_name: str = "month") -> date:
    try:
        return parse_month_label(label)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{field_name} must be a YYYY-MM month label.",
        ) from exc


@dataclass(slots=True)
class PersonCreateData:
    code: str
    display_name: str
    avatar_url: str | None = None
    role_title: str | None = None
    sort_order: int = 0
    active: bool = True


@dataclass(slots=True)
class PersonUpdateData:
    display_name: str | None = None
    avatar_url: str | None = None
    role_title: str | None = None
    sort_order: int | None = None
    active: bool | None = None


@dataclass(slots=True)
class ProjectCreateData:
    code: str
    name: str
    project_type: ProjectType
    start_date: date
    end_date: date
    status: ProjectStatus = ProjectStatus.ACTIVE
    color: str = "#3B82F6"
    plan_doc_title: str | None = None
    plan_doc_version: str | None = None
    sort_order: int = 0


@dataclass(slots=True)
class ProjectUpdateData:
    name: str | None = None
    project_type: ProjectType | None = None
    status: ProjectStatus | None = None
    color: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    plan_doc_title: str | None = None
    plan_doc_version: str | None = None
    sort_order: int | None = None


@dataclass(slots=True)
class PlanEntryInput:
    month: str
    person_id: UUID
    planned_mm: Decimal


@dataclass(slots=True)
class ReleaseCreateData:
    name: str
    due_date: date
    total_tickets: int
    closed_tickets: int
    late_days: int | None = None


class ProjectService:
    """Roster and project plan maintenance."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_person(person: Person) -> dict[str, object]:
        return {
            "id": str(person.id),
            "code": person.code,
            "display_name": person.display_name,
            "avatar_url": person.avatar_url,
            "role_title": person.role_title,
            "sort_order": person.sort_order,
            "active": person.active,
        }

    @staticmethod
    def serialize_project(project: Project, assignee_ids: list[UUID] | None = None) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(project.id),
            "code": project.code,
            "name": project.name,
            "project_type": project.project_type.value,
            "status": project.status.value,
            "color": project.color,
            "start_date": project.start_date.isoformat(),
            "end_date": project.end_date.isoformat(),
            "plan_source": (
                {"doc_title": project.plan_doc_title, "doc_version": project.plan_doc_version}
                if project.plan_doc_title
                else None
            ),
            "sort_order": project.sort_order,
        }
        if assignee_ids is not None:
            payload["assignee_ids"] = [str(person_id) for person_id in assignee_ids]
        return payload

    @staticmethod
    def serialize_release(release: ProjectRelease) -> dict[str, object]:
        return {
            "id": str(release.id),
            "project_id": str(release.project_id),
            "name": release.name,
            "due_date": release.due_date.isoformat(),
            "total_tickets": release.total_tickets,
            "closed_tickets": release.closed_tickets,
            "late_days": release.late_days,
        }

    # ---------- People ----------
    def list_people(self, *, active_only: bool = False) -> list[Person]:
        return self.repo.list_people(active_only=active_only)

    def get_person(self, person_id: UUID) -> Person:
        person = self.repo.get_person(person_id)
        if person is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Person not found.")
        return person

    def create_person(self, data: PersonCreateData) -> Person:
        code = data.code.strip()
        if not code or not data.display_name.strip():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="code and display_name must not be empty.",
            )
        if self.repo.get_person_by_code(code) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Person code already exists.")

        person = Person(
            code=code,
            display_name=data.display_name.strip(),
            avatar_url=data.avatar_url,
            role_title=data.role_title,
            sort_order=data.sort_order,
            active=data.active,
            created_at=datetime.utcnow(),
        )
        self.repo.add_person(person)
        self.db.commit()
        self.db.refresh(person)
        return person

    def update_person(self, person_id: UUID, data: PersonUpdateData) -> Person:
        person = self.get_person(person_id)
        if data.display_name is not None:
            if not data.display_name.strip():
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="display_name must not be empty.",
                )
            person.display_name = data.display_name.strip()
        if data.avatar_url is not None:
            person.avatar_url = data.avatar_url
        if data.role_title is not None:
            person.role_title = data.role_title
        if data.sort_order is not None:
            person.sort_order = data.sort_order
        if data.active is not None:
            person.active = data.active
        self.db.commit()
        self.db.refresh(person)
        return person

    # ---------- Projects ----------
    def list_projects(self, *, include_archived: bool = False) -> list[Project]:
        return self.repo.list_projects(include_archived=include_archived)

    def get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def assignee_ids(self, project_id: UUID) -> list[UUID]:
        return [row.person_id for row in self.repo.list_assignments(project_id)]

    @staticmethod
    def _validate_date_range(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_date must be greater than or equal to start_date.",
            )

    def create_project(self, data: ProjectCreateData) -> Project:
        self._validate_date_range(data.start_date, data.end_date)
        code = data.code.strip()
        if not code or not data.name.strip():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="code and name must not be empty.",
            )
        if self.repo.get_project_by_code(code) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project code already exists.")

        now = datetime.utcnow()
        project = Project(
            code=code,
            name=data.name.strip(),
            project_type=data.project_type,
            status=data.status,
            color=data.color,
            start_date=data.start_date,
            end_date=data.end_date,
            plan_doc_title=data.plan_doc_title,
            plan_doc_version=data.plan_doc_version,
            sort_order=data.sort_order,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_project(project)
        self.db.commit()
        self.db.refresh(project)
        return project

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> Project:
        project = self.get_project(project_id)

        next_start = data.start_date or project.start_date
        next_end = data.end_date or project.end_date
        self._validate_date_range(next_start, next_end)

        if data.name is not None:
            if not data.name.strip():
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="name must not be empty.",
                )
            project.name = data.name.strip()
        if data.project_type is not None:
            project.project_type = data.project_type
        if data.status is not None:
            project.status = data.status
        if data.color is not None:
            project.color = data.color
        if data.plan_doc_title is not None:
            project.plan_doc_title = data.plan_doc_title
        if data.plan_doc_version is not None:
            project.plan_doc_version = data.plan_doc_version
        if data.sort_order is not None:
            project.sort_order = data.sort_order
        project.start_date = next_start
        project.end_date = next_end
        project.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(project)
        return project

    # ---------- Assignees ----------
    def replace_assignees(self, project_id: UUID, person_ids: list[UUID]) -> list[UUID]:
        project = self.get_project(project_id)
        if len(set(person_ids)) != len(person_ids):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Duplicate person_id in assignee list.",
            )
        known = self.repo.get_people(person_ids)
        missing = [str(person_id) for person_id in person_ids if person_id not in known]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown person_id: {', '.join(missing)}.",
            )

        try:
            self.repo.replace_assignments(project.id, person_ids)
            project.updated_at = datetime.utcnow()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Assignee list conflicts with existing data.",
            ) from exc
        return self.assignee_ids(project.id)

    # ---------- Monthly plan ----------
    def read_monthly_plan(self, project_id: UUID) -> dict[str, object]:
        project = self.get_project(project_id)
        plan: dict[str, dict[str, str]] = {}
        for entry in self.repo.list_plan_entries(project.id):
            plan.setdefault(month_label(entry.month_start), {})[str(entry.person_id)] = str(_q2(entry.planned_mm))
        return {"project_id": str(project.id), "monthly_plan": plan}

    def upsert_monthly_plan(self, project_id: UUID, entries: list[PlanEntryInput]) -> dict[str, object]:
        project = self.get_project(project_id)
        assignees = set(self.assignee_ids(project.id))

        normalized: list[tuple[date, UUID, Decimal]] = []
        seen_keys: set[tuple[date, UUID]] = set()
        for payload in entries:
            month = parse_month_or_422(payload.month)
            if payload.planned_mm < ZERO:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="planned_mm must be greater or equal zero.",
                )
            if payload.person_id not in assignees:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="person_id must reference an assignee of this project.",
                )
            key = (month, payload.person_id)
            if key in seen_keys:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Duplicate (month, person_id) key in payload.",
                )
            seen_keys.add(key)
            normalized.append((month, payload.person_id, _q2(payload.planned_mm)))

        try:
            for month, person_id, planned_mm in normalized:
                existing = self.repo.get_plan_entry(project.id, person_id, month)
                if planned_mm == ZERO:
                    if existing is not None:
                        self.repo.delete_plan_entry(existing)
                    continue
                if existing is None:
                    self.repo.add_plan_entry(
                        MonthlyPlanEntry(
                            project_id=project.id,
                            person_id=person_id,
                            month_start=month,
                            planned_mm=planned_mm,
                        )
                    )
                else:
                    existing.planned_mm = planned_mm
            project.updated_at = datetime.utcnow()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Monthly plan update violates data constraints.",
            ) from exc

        return self.read_monthly_plan(project.id)

    # ---------- Releases ----------
    def list_releases(self, project_id: UUID) -> list[ProjectRelease]:
        project = self.get_project(project_id)
        return self.repo.list_releases(project.id)

    def create_release(self, project_id: UUID, data: ReleaseCreateData) -> ProjectRelease:
        project = self.get_project(project_id)
        if data.total_tickets < 0 or data.closed_tickets < 0:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Ticket counts must be greater or equal zero.",
            )
        if data.closed_tickets > data.total_tickets:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="closed_tickets must not exceed total_tickets.",
            )
        release = ProjectRelease(
            project_id=project.id,
            name=data.name.strip(),
            due_date=data.due_date,
            total_tickets=data.total_tickets,
            closed_tickets=data.closed_tickets,
            late_days=data.late_days,
        )
        self.repo.add_release(release)
        self.db.commit()
        self.db.refresh(release)
        return release
