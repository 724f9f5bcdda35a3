"""Generated worklog drafts and evaluation narrative endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.repositories.llm_repository import LLMRepository, get_llm_repository
from resplan.services.narrative_service import NarrativeService

router = APIRouter(tags=["narratives"])


class WorklogDraftPayload(BaseModel):
    report_text: str = Field(max_length=8000)
    context: Literal["plan", "actual"] = "actual"


class MonthlyNarrativePayload(BaseModel):
    scores: dict[str, Decimal] | None = None


def _service(db: Session, llm: LLMRepository) -> NarrativeService:
    return NarrativeService(db, llm)


@router.post("/narratives/worklog-drafts")
def create_worklog_drafts(
    payload: WorklogDraftPayload,
    db: Session = Depends(get_db_session),
    llm: LLMRepository = Depends(get_llm_repository),
) -> dict[str, list[object]]:
    drafts = _service(db, llm).parse_worklog_report(report_text=payload.report_text, context=payload.context)
    return {"items": drafts}


@router.post("/people/{person_id}/evaluations/annual-report")
def create_annual_report(
    person_id: UUID,
    year: int = Query(..., ge=1, le=9999),
    db: Session = Depends(get_db_session),
    llm: LLMRepository = Depends(get_llm_repository),
) -> dict[str, object]:
    return _service(db, llm).annual_report(person_id=person_id, year=year)


@router.post("/people/{person_id}/evaluations/{month}/narrative")
def create_monthly_narrative(
    person_id: UUID,
    month: str,
    payload: MonthlyNarrativePayload | None = None,
    db: Session = Depends(get_db_session),
    llm: LLMRepository = Depends(get_llm_repository),
) -> dict[str, object]:
    scores = payload.scores if payload is not None else None
    return _service(db, llm).monthly_narrative(person_id=person_id, month=month, scores=scores)
