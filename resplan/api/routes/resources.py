"""Yearly resource matrix endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.services.resource_matrix import GroupBy
from resplan.services.resource_service import ResourceService

router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("/yearly")
def get_yearly_resources(
    year: int = Query(..., ge=1, le=9999),
    group_by: GroupBy = Query(default=GroupBy.PERSON),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ResourceService(db).yearly_matrix(year=year, group_by=group_by)


@router.get("/yearly/visible")
def get_visible_yearly_resources(
    year: int = Query(..., ge=1, le=9999),
    group_by: GroupBy = Query(default=GroupBy.PERSON),
    expanded: list[str] | None = Query(default=None),
    seed: str = Query(default="roots"),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ResourceService(db).visible_matrix(year=year, group_by=group_by, expanded=expanded, seed=seed)
