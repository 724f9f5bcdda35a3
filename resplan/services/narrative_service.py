"""Generated worklog drafts and evaluation narratives."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import HTTPException, status
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from resplan.core.config import get_settings
from resplan.core.errors import NarrativeGenerationError
from resplan.models.entities import Project
from resplan.repositories.llm_repository import LLMRepository, ModelTier
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.evaluation_service import (
    CRITERIA_KEYS,
    CRITERIA_LABELS,
    EvaluationService,
    validate_criteria_keys,
    validate_score,
)
from resplan.services.months import month_label

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")
EMPTY_ANNUAL_REPORT = "선택된 연도에 대한 평가 데이터가 없어 연간 리포트를 생성할 수 없습니다."

WORKLOG_SCHEMA = {
    "type": "object",
    "properties": {
        "entries": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "project_name": {
                        "type": "string",
                        "description": "Name of the project. Must be one of the valid project names provided.",
                    },
                    "task": {"type": "string", "description": "Description of the task performed."},
                    "hours": {"type": "number", "description": "Hours spent on the task."},
                },
                "required": ["project_name", "task", "hours"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["entries"],
    "additionalProperties": False,
}


def monthly_narrative_schema() -> dict[str, object]:
    return {
        "type": "object",
        "properties": {
            "criteria_comments": {
                "type": "object",
                "properties": {
                    key: {
                        "type": "string",
                        "description": f"A specific comment for the '{CRITERIA_LABELS[key]}' criterion.",
                    }
                    for key in CRITERIA_KEYS
                },
                "required": list(CRITERIA_KEYS),
                "additionalProperties": False,
            },
            "final_comment": {
                "type": "string",
                "description": "A comprehensive final summary of the monthly performance.",
            },
        },
        "required": ["criteria_comments", "final_comment"],
        "additionalProperties": False,
    }


class ParsedWorklogEntry(BaseModel):
    project_name: str
    task: str = ""
    hours: float = Field(ge=0, le=24)


class ParsedWorklogReport(BaseModel):
    entries: list[ParsedWorklogEntry]


class MonthlyNarrative(BaseModel):
    criteria_comments: dict[str, str]
    final_comment: str


def normalize_project_name(name: str) -> str:
    return "".join(name.split()).casefold()


class NarrativeService:
    """Prompts the text generation service and shapes its answers."""

    def __init__(self, db: Session, llm: LLMRepository) -> None:
        self.db = db
        self.llm = llm
        self.repo = PlanningRepository(db)
        self.evaluations = EvaluationService(db)
        self.language = get_settings().narrative_language

    # ---------- Worklog drafts ----------
    def parse_worklog_report(self, *, report_text: str, context: Literal["plan", "actual"]) -> list[dict[str, object]]:
        text = report_text.strip()
        if not text:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="report_text must not be empty.",
            )

        projects = self.repo.list_projects(include_archived=False)
        by_name: dict[str, Project] = {normalize_project_name(project.name): project for project in projects}

        system_prompt = (
            "You are an assistant for a project management tool. Parse the user's work report into "
            "structured entries of project, task and hours. Match project names in the text to the list "
            "of valid project names; when a name is ambiguous or missing from the list, choose the most "
            "likely project from the list."
        )
        user_prompt = (
            f"Report type: {'planned work' if context == 'plan' else 'actual work'}\n"
            f"Valid project names: [{', '.join(project.name for project in projects)}]\n"
            f'Work report text: "{text}"'
        )
        raw = self.llm.generate_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            schema_name="worklog_report",
            schema=WORKLOG_SCHEMA,
            model_tier=ModelTier.LIGHT,
        )
        try:
            report = ParsedWorklogReport.model_validate(raw)
        except ValidationError as exc:
            logger.error("Unusable worklog report response: %s", exc)
            raise NarrativeGenerationError("Work report could not be parsed.") from exc

        drafts = []
        for entry in report.entries:
            project = by_name.get(normalize_project_name(entry.project_name))
            drafts.append(
                {
                    "project_id": str(project.id) if project is not None else None,
                    "project_name": project.name if project is not None else entry.project_name,
                    "task": entry.task,
                    "hours": str(Decimal(str(entry.hours)).quantize(Q2)),
                }
            )
        return drafts

    # ---------- Evaluation narratives ----------
    def monthly_narrative(
        self,
        *,
        person_id: UUID,
        month: str,
        scores: dict[str, Decimal] | None = None,
    ) -> dict[str, object]:
        snapshot = self.evaluations.snapshot(person_id=person_id, month=month)
        if scores is not None:
            validate_criteria_keys(set(scores))
            effective = {key: validate_score(key, scores[key]) for key in CRITERIA_KEYS}
        else:
            effective = snapshot.scores

        score_lines = "\n".join(
            f"- {CRITERIA_LABELS[key]}: {effective[key]}/5" for key in CRITERIA_KEYS if key in effective
        )
        system_prompt = (
            "You are an HR performance analyst writing a monthly performance report for a team member. "
            "Write an insightful comment for each evaluation criterion and a final overall summary. "
            f"Write every comment in {self.language}."
        )
        user_prompt = (
            f"Team member: {snapshot.person.display_name}\n"
            f"Month: {month_label(snapshot.month_start)}\n\n"
            f"Evaluation scores:\n{score_lines}\n\n"
            "High scores get positive comments, low scores get constructive feedback. "
            "The final summary highlights strengths and areas for development."
        )
        raw = self.llm.generate_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            schema_name="monthly_evaluation",
            schema=monthly_narrative_schema(),
            model_tier=ModelTier.LIGHT,
        )
        try:
            narrative = MonthlyNarrative.model_validate(raw)
        except ValidationError as exc:
            logger.error("Unusable monthly narrative response: %s", exc)
            raise NarrativeGenerationError("Monthly narrative response was malformed.") from exc

        missing = [key for key in CRITERIA_KEYS if not narrative.criteria_comments.get(key, "").strip()]
        if missing:
            logger.error("Monthly narrative is missing criteria: %s", ", ".join(missing))
            raise NarrativeGenerationError(f"Monthly narrative is missing criteria: {', '.join(missing)}.")

        return {
            "person_id": str(snapshot.person.id),
            "month": month_label(snapshot.month_start),
            "criteria_comments": {key: narrative.criteria_comments[key] for key in CRITERIA_KEYS},
            "final_comment": narrative.final_comment,
        }

    def annual_report(self, *, person_id: UUID, year: int) -> dict[str, object]:
        snapshots = self.evaluations.yearly_snapshots(person_id=person_id, year=year)
        if not snapshots:
            return {"year": year, "report": EMPTY_ANNUAL_REPORT}

        sections = []
        for snapshot in snapshots:
            values = list(snapshot.scores.values())
            average = sum(values, Decimal("0")) / len(values) if values else Decimal("0")
            sections.append(
                f"### {month_label(snapshot.month_start)}\n"
                f"- Average score: {average.quantize(Decimal('0.1'))}/5.0\n"
                f'- Manager\'s comment: "{snapshot.final_comment or ""}"'
            )

        system_prompt = (
            "You are a senior HR manager summarizing a team member's annual performance. "
            "Be comprehensive and strategic, focusing on long-term growth and contribution. "
            f"Write the report in {self.language}."
        )
        user_prompt = (
            f"Write an annual performance report for '{snapshots[0].person.display_name}' for {year}.\n\n"
            "Monthly evaluation data:\n"
            + "\n\n".join(sections)
            + "\n\nReport structure:\n"
            "1. Annual performance summary\n"
            "2. Performance trends and patterns\n"
            "3. Key accomplishments and strengths\n"
            "4. Two or three development goals for next year"
        )
        report = self.llm.generate_text(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=0.6,
            model_tier=ModelTier.HEAVY,
        )
        return {"year": year, "report": report}
