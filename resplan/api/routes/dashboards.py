"""My-work summary and personal/team dashboard endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.services.dashboard_service import DashboardService

router = APIRouter(tags=["dashboards"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/people/{person_id}/summary")
def get_my_work_summary(
    person_id: UUID,
    month: str = Query(...),
    week_of: date | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).my_work_summary(person_id=person_id, month=month, week_of=week_of)


@router.get("/dashboards/personal/{person_id}")
def get_personal_dashboard(
    person_id: UUID,
    month: str = Query(...),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).personal_dashboard(person_id=person_id, month=month)


@router.get("/dashboards/team")
def get_team_dashboard(month: str = Query(...), db: Session = Depends(get_db_session)) -> dict[str, object]:
    return _service(db).team_dashboard(month=month)
