"""Worklog capture and weekly timesheet endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.models.entities import WorklogSource, WorklogStatus
from resplan.services.worklog_service import WorklogInput, WorklogService

router = APIRouter(tags=["worklogs"])


class WorklogEntryPayload(BaseModel):
    id: UUID | None = None
    person_id: UUID
    project_id: UUID
    work_date: date
    task: str = Field(default="", max_length=1000)
    planned_hours: Decimal = Decimal("0")
    actual_hours: Decimal = Decimal("0")
    status: WorklogStatus = WorklogStatus.DRAFT
    source: WorklogSource = WorklogSource.MANUAL


class WorklogBulkPayload(BaseModel):
    entries: list[WorklogEntryPayload]


@router.get("/people/{person_id}/worklogs")
def list_person_worklogs(
    person_id: UUID,
    from_date: date = Query(...),
    to_date: date = Query(...),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = WorklogService(db)
    items = service.list_worklogs(person_id=person_id, from_date=from_date, to_date=to_date)
    return {"items": [service.serialize_worklog(worklog) for worklog in items]}


@router.put("/worklogs/bulk")
def bulk_upsert_worklogs(payload: WorklogBulkPayload, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = WorklogService(db)
    saved = service.bulk_upsert([WorklogInput(**entry.model_dump()) for entry in payload.entries])
    return {"items": [service.serialize_worklog(worklog) for worklog in saved]}


@router.get("/people/{person_id}/timesheet")
def get_weekly_timesheet(
    person_id: UUID,
    week_of: date = Query(...),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return WorklogService(db).weekly_timesheet(person_id=person_id, week_of=week_of)
