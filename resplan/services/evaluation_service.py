"""Monthly performance evaluations scored against fixed criteria."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from resplan.core.config import get_settings
from resplan.models.entities import Evaluation, EvaluationScore, EvaluationStatus, Person
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.dashboard_service import plan_achievement
from resplan.services.months import month_end, month_label
from resplan.services.project_service import parse_month_or_422

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
HUNDRED = Decimal("100.00")

CRITERIA: tuple[tuple[str, str], ...] = (
    ("work_performance", "업무 성과"),
    ("task_completion", "과업 완성도"),
    ("collaboration", "협업 및 커뮤니케이션"),
    ("problem_solving", "문제 해결 능력"),
    ("development", "개발 역량 및 성장"),
    ("work_attitude", "업무 태도"),
    ("culture_fit", "조직 문화 기여"),
)
CRITERIA_KEYS = tuple(key for key, _ in CRITERIA)
CRITERIA_LABELS = dict(CRITERIA)

DEFAULT_SCORE = Decimal("3.0")
MIN_SCORE = Decimal("1.0")
MAX_SCORE = Decimal("5.0")
TOP_PROJECTS_LIMIT = 3


@dataclass(slots=True)
class CriterionInput:
    score: Decimal
    comment: str = ""


@dataclass(slots=True)
class EvaluationSaveData:
    criteria: dict[str, CriterionInput]
    status: EvaluationStatus = EvaluationStatus.DRAFT
    final_comment: str = ""


@dataclass(slots=True)
class EvaluationSnapshot:
    """Scores and comments of one month, stored or freshly drafted."""

    person: Person
    month_start: date
    scores: dict[str, Decimal]
    comments: dict[str, str] = field(default_factory=dict)
    final_comment: str = ""


def validate_score(key: str, score: Decimal) -> Decimal:
    if score < MIN_SCORE or score > MAX_SCORE or (score * 2) != (score * 2).to_integral_value():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Score for '{key}' must be between 1 and 5 in steps of 0.5.",
        )
    return score.quantize(Decimal("0.1"))


def validate_criteria_keys(keys: set[str]) -> None:
    missing = [key for key in CRITERIA_KEYS if key not in keys]
    unknown = sorted(keys - set(CRITERIA_KEYS))
    if missing or unknown:
        parts = []
        if missing:
            parts.append(f"missing criteria: {', '.join(missing)}")
        if unknown:
            parts.append(f"unknown criteria: {', '.join(unknown)}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="; ".join(parts) + ".")


class EvaluationService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()
        self.hours_per_mm = Decimal(self.settings.hours_per_mm)

    @staticmethod
    def criteria_catalog() -> list[dict[str, str]]:
        return [{"key": key, "label": label} for key, label in CRITERIA]

    def _ensure_person(self, person_id: UUID) -> Person:
        person = self.repo.get_person(person_id)
        if person is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Person not found.")
        return person

    # ---------- Metrics ----------
    def compute_metrics(self, person_id: UUID, month_start: date) -> dict[str, object]:
        """Plan/actual figures of one person-month, as stored in the evaluation snapshot."""

        plan_entries = self.repo.list_plan_entries_between(
            from_month=month_start, to_month=month_start, person_id=person_id
        )
        plan_mm = sum((entry.planned_mm for entry in plan_entries), ZERO).quantize(Q2)

        worklogs = self.repo.list_worklogs(person_id=person_id, from_date=month_start, to_date=month_end(month_start))
        direct_ids = self.repo.direct_project_ids()
        total_hours = ZERO
        direct_hours = ZERO
        hours_by_project: dict[UUID, Decimal] = {}
        for log in worklogs:
            total_hours += log.actual_hours
            if log.project_id in direct_ids:
                direct_hours += log.actual_hours
            hours_by_project[log.project_id] = hours_by_project.get(log.project_id, ZERO) + log.actual_hours

        actual_mm = (total_hours / self.hours_per_mm).quantize(Q2)
        direct_share = ZERO if total_hours == ZERO else (direct_hours * HUNDRED / total_hours).quantize(Q2)

        projects = self.repo.get_projects(hours_by_project)
        ranked = sorted(
            ((projects[project_id], hours) for project_id, hours in hours_by_project.items() if project_id in projects),
            key=lambda item: (-item[1], item[0].name),
        )
        top_projects = [
            {
                "project_id": str(project.id),
                "name": project.name,
                "actual_mm": str((hours / self.hours_per_mm).quantize(Q2)),
            }
            for project, hours in ranked[:TOP_PROJECTS_LIMIT]
        ]

        return {
            "plan_mm": str(plan_mm),
            "actual_mm": str(actual_mm),
            "delta_mm": str((actual_mm - plan_mm).quantize(Q2)),
            "pa": str(plan_achievement(actual_mm, plan_mm)),
            "direct_share": str(direct_share),
            "top_projects": top_projects,
        }

    # ---------- Serialization ----------
    @staticmethod
    def serialize_evaluation(
        *,
        person_id: UUID,
        month_start: date,
        evaluation: Evaluation | None,
        scores: dict[str, tuple[Decimal, str]],
        metrics: dict[str, object],
    ) -> dict[str, object]:
        return {
            "id": str(evaluation.id) if evaluation is not None else None,
            "person_id": str(person_id),
            "month": month_label(month_start),
            "saved": evaluation is not None,
            "status": evaluation.status.value if evaluation is not None else EvaluationStatus.DRAFT.value,
            "metrics": metrics,
            "criteria": {
                key: {
                    "label": CRITERIA_LABELS[key],
                    "score": str(scores[key][0]),
                    "comment": scores[key][1],
                }
                for key in CRITERIA_KEYS
                if key in scores
            },
            "final_comment": evaluation.final_comment if evaluation is not None else "",
            "updated_at": evaluation.updated_at.isoformat() if evaluation is not None else None,
        }

    def _stored_scores(self, evaluation: Evaluation) -> dict[str, tuple[Decimal, str]]:
        return {row.criterion_key: (row.score, row.comment) for row in self.repo.list_scores(evaluation.id)}

    # ---------- Reads ----------
    def get_monthly(self, *, person_id: UUID, month: str) -> dict[str, object]:
        person = self._ensure_person(person_id)
        month_start = parse_month_or_422(month)
        evaluation = self.repo.get_evaluation(person.id, month_start)
        if evaluation is None:
            return self.serialize_evaluation(
                person_id=person.id,
                month_start=month_start,
                evaluation=None,
                scores={key: (DEFAULT_SCORE, "") for key in CRITERIA_KEYS},
                metrics=self.compute_metrics(person.id, month_start),
            )
        return self.serialize_evaluation(
            person_id=person.id,
            month_start=month_start,
            evaluation=evaluation,
            scores=self._stored_scores(evaluation),
            metrics=evaluation.metrics,
        )

    def list_yearly(self, *, person_id: UUID, year: int) -> list[dict[str, object]]:
        person = self._ensure_person(person_id)
        evaluations = self.repo.list_evaluations(person.id, from_month=date(year, 1, 1), to_month=date(year, 12, 1))
        return [
            self.serialize_evaluation(
                person_id=person.id,
                month_start=evaluation.month_start,
                evaluation=evaluation,
                scores=self._stored_scores(evaluation),
                metrics=evaluation.metrics,
            )
            for evaluation in evaluations
        ]

    def snapshot(self, *, person_id: UUID, month: str) -> EvaluationSnapshot:
        """Stored scores of a month, or the default draft scores when nothing is saved."""

        person = self._ensure_person(person_id)
        month_start = parse_month_or_422(month)
        evaluation = self.repo.get_evaluation(person.id, month_start)
        if evaluation is None:
            return EvaluationSnapshot(
                person=person,
                month_start=month_start,
                scores={key: DEFAULT_SCORE for key in CRITERIA_KEYS},
            )
        stored = self._stored_scores(evaluation)
        return EvaluationSnapshot(
            person=person,
            month_start=month_start,
            scores={key: score for key, (score, _) in stored.items()},
            comments={key: comment for key, (_, comment) in stored.items()},
            final_comment=evaluation.final_comment,
        )

    def yearly_snapshots(self, *, person_id: UUID, year: int) -> list[EvaluationSnapshot]:
        person = self._ensure_person(person_id)
        evaluations = self.repo.list_evaluations(person.id, from_month=date(year, 1, 1), to_month=date(year, 12, 1))
        snapshots = []
        for evaluation in evaluations:
            stored = self._stored_scores(evaluation)
            snapshots.append(
                EvaluationSnapshot(
                    person=person,
                    month_start=evaluation.month_start,
                    scores={key: score for key, (score, _) in stored.items()},
                    comments={key: comment for key, (_, comment) in stored.items()},
                    final_comment=evaluation.final_comment,
                )
            )
        return snapshots

    # ---------- Writes ----------
    def save_monthly(self, *, person_id: UUID, month: str, payload: EvaluationSaveData) -> dict[str, object]:
        person = self._ensure_person(person_id)
        month_start = parse_month_or_422(month)
        validate_criteria_keys(set(payload.criteria))
        scores = {key: validate_score(key, payload.criteria[key].score) for key in CRITERIA_KEYS}

        now = datetime.utcnow()
        evaluation = self.repo.get_evaluation(person.id, month_start)
        if evaluation is not None:
            if evaluation.status is EvaluationStatus.CONFIRMED and payload.status is EvaluationStatus.DRAFT:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="A confirmed evaluation cannot be reverted to draft.",
                )
            evaluation.status = payload.status
            evaluation.final_comment = payload.final_comment
            evaluation.metrics = self.compute_metrics(person.id, month_start)
            evaluation.updated_at = now
        else:
            evaluation = self.repo.add_evaluation(
                Evaluation(
                    person_id=person.id,
                    month_start=month_start,
                    status=payload.status,
                    final_comment=payload.final_comment,
                    metrics=self.compute_metrics(person.id, month_start),
                    created_at=now,
                    updated_at=now,
                )
            )

        self.repo.replace_scores(
            evaluation.id,
            [
                EvaluationScore(
                    evaluation_id=evaluation.id,
                    criterion_key=key,
                    score=scores[key],
                    comment=payload.criteria[key].comment,
                )
                for key in CRITERIA_KEYS
            ],
        )
        self.db.commit()
        self.db.refresh(evaluation)

        return self.serialize_evaluation(
            person_id=person.id,
            month_start=month_start,
            evaluation=evaluation,
            scores=self._stored_scores(evaluation),
            metrics=evaluation.metrics,
        )
