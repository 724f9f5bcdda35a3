"""Project setup, assignee, monthly plan and release endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.models.entities import ProjectStatus, ProjectType
from resplan.services.project_service import (
    PlanEntryInput,
    ProjectCreateData,
    ProjectService,
    ProjectUpdateData,
    ReleaseCreateData,
)

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    project_type: ProjectType = ProjectType.PROJECT
    status: ProjectStatus = ProjectStatus.ACTIVE
    color: str = Field(default="#3B82F6", min_length=1, max_length=32)
    start_date: date
    end_date: date
    plan_doc_title: str | None = Field(default=None, max_length=255)
    plan_doc_version: str | None = Field(default=None, max_length=64)
    sort_order: int = Field(default=0, ge=0)


class ProjectUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    project_type: ProjectType | None = None
    status: ProjectStatus | None = None
    color: str | None = Field(default=None, min_length=1, max_length=32)
    start_date: date | None = None
    end_date: date | None = None
    plan_doc_title: str | None = Field(default=None, max_length=255)
    plan_doc_version: str | None = Field(default=None, max_length=64)
    sort_order: int | None = Field(default=None, ge=0)


class AssigneesPayload(BaseModel):
    person_ids: list[UUID]


class PlanEntryPayload(BaseModel):
    month: str
    person_id: UUID
    planned_mm: Decimal


class MonthlyPlanPayload(BaseModel):
    entries: list[PlanEntryPayload]


class ReleaseCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    due_date: date
    total_tickets: int = 0
    closed_tickets: int = 0
    late_days: int | None = None


@router.get("")
def list_projects(include_archived: bool = False, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = ProjectService(db)
    items = service.list_projects(include_archived=include_archived)
    return {"items": [service.serialize_project(project, service.assignee_ids(project.id)) for project in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    project = service.create_project(ProjectCreateData(**payload.model_dump()))
    return service.serialize_project(project, [])


@router.get("/{project_id}")
def get_project(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    project = service.get_project(project_id)
    return service.serialize_project(project, service.assignee_ids(project.id))


@router.patch("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    project = service.update_project(project_id, ProjectUpdateData(**payload.model_dump(exclude_unset=True)))
    return service.serialize_project(project, service.assignee_ids(project.id))


@router.put("/{project_id}/assignees")
def replace_project_assignees(
    project_id: UUID,
    payload: AssigneesPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    assignee_ids = service.replace_assignees(project_id, payload.person_ids)
    return {"project_id": str(project_id), "assignee_ids": [str(person_id) for person_id in assignee_ids]}


@router.get("/{project_id}/monthly-plan")
def get_monthly_plan(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    return ProjectService(db).read_monthly_plan(project_id)


@router.put("/{project_id}/monthly-plan")
def put_monthly_plan(
    project_id: UUID,
    payload: MonthlyPlanPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    return service.upsert_monthly_plan(
        project_id,
        [
            PlanEntryInput(month=entry.month, person_id=entry.person_id, planned_mm=entry.planned_mm)
            for entry in payload.entries
        ],
    )


@router.get("/{project_id}/releases")
def list_project_releases(project_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = ProjectService(db)
    return {"items": [service.serialize_release(release) for release in service.list_releases(project_id)]}


@router.post("/{project_id}/releases", status_code=status.HTTP_201_CREATED)
def create_project_release(
    project_id: UUID,
    payload: ReleaseCreatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    release = service.create_release(project_id, ReleaseCreateData(**payload.model_dump()))
    return service.serialize_release(release)
