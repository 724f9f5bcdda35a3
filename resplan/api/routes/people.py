"""Team roster endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from resplan.db.dependencies import get_db_session
from resplan.services.project_service import PersonCreateData, PersonUpdateData, ProjectService

router = APIRouter(prefix="/people", tags=["people"])


class PersonCreatePayload(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)
    role_title: str | None = Field(default=None, max_length=128)
    sort_order: int = Field(default=0, ge=0)
    active: bool = True


class PersonUpdatePayload(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)
    role_title: str | None = Field(default=None, max_length=128)
    sort_order: int | None = Field(default=None, ge=0)
    active: bool | None = None


@router.get("")
def list_people(active_only: bool = False, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = ProjectService(db)
    return {"items": [service.serialize_person(person) for person in service.list_people(active_only=active_only)]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_person(payload: PersonCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    person = service.create_person(PersonCreateData(**payload.model_dump()))
    return service.serialize_person(person)


@router.get("/{person_id}")
def get_person(person_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = ProjectService(db)
    return service.serialize_person(service.get_person(person_id))


@router.patch("/{person_id}")
def update_person(
    person_id: UUID,
    payload: PersonUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = ProjectService(db)
    person = service.update_person(person_id, PersonUpdateData(**payload.model_dump(exclude_unset=True)))
    return service.serialize_person(person)
