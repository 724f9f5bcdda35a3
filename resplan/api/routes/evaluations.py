"""Monthly evaluation endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.models.entities import EvaluationStatus
from resplan.services.evaluation_service import CriterionInput, EvaluationSaveData, EvaluationService

router = APIRouter(tags=["evaluations"])


class CriterionPayload(BaseModel):
    score: Decimal
    comment: str = Field(default="", max_length=4000)


class EvaluationSavePayload(BaseModel):
    status: EvaluationStatus = EvaluationStatus.DRAFT
    criteria: dict[str, CriterionPayload]
    final_comment: str = Field(default="", max_length=8000)


@router.get("/evaluations/criteria")
def list_evaluation_criteria() -> dict[str, list[object]]:
    return {"items": EvaluationService.criteria_catalog()}


@router.get("/people/{person_id}/evaluations")
def list_person_evaluations(
    person_id: UUID,
    year: int = Query(..., ge=1, le=9999),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    return {"items": EvaluationService(db).list_yearly(person_id=person_id, year=year)}


@router.get("/people/{person_id}/evaluations/{month}")
def get_person_evaluation(person_id: UUID, month: str, db: Session = Depends(get_db_session)) -> dict[str, object]:
    return EvaluationService(db).get_monthly(person_id=person_id, month=month)


@router.put("/people/{person_id}/evaluations/{month}")
def save_person_evaluation(
    person_id: UUID,
    month: str,
    payload: EvaluationSavePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    data = EvaluationSaveData(
        status=payload.status,
        criteria={
            key: CriterionInput(score=criterion.score, comment=criterion.comment)
            for key, criterion in payload.criteria.items()
        },
        final_comment=payload.final_comment,
    )
    return EvaluationService(db).save_monthly(person_id=person_id, month=month, payload=data)
