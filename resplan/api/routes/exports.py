"""Export endpoint for the yearly resource matrix."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.services.resource_matrix import GroupBy
from resplan.services.resource_service import ResourceService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/resources")
def export_resources(
    year: int = Query(..., ge=1, le=9999),
    group_by: GroupBy = Query(default=GroupBy.PERSON),
    format: str = Query(default="xlsx"),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = ResourceService(db).export_matrix(year=year, group_by=group_by, format_name=format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
