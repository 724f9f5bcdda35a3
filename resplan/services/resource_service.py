"""Yearly resource matrix read model, visibility filtering and exports."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from io import BytesIO

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resplan.core.config import get_settings
from resplan.core.errors import DataUnavailable
from resplan.models.entities import ProjectRelease
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.months import month_label
from resplan.services.resource_matrix import (
    ZERO,
    GroupBy,
    MatrixResult,
    MatrixRow,
    PersonRecord,
    ProjectRecord,
    ReleaseInfo,
    ResourceDataset,
    build_matrix,
    compute_visible_rows,
    expand_all,
    initial_expansion,
)

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")
SEED_MODES = {"roots", "none", "all"}


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def select_release(releases: Iterable[ProjectRelease]) -> ProjectRelease | None:
    """First open release by due date, else the last one; ``None`` when empty."""

    ordered = sorted(releases, key=lambda row: (row.due_date, row.name))
    if not ordered:
        return None
    for release in ordered:
        if release.closed_tickets < release.total_tickets:
            return release
    return ordered[-1]


class RepositoryDataSource:
    """Loads a ``ResourceDataset`` for one calendar year from the database."""

    def __init__(self, repo: PlanningRepository, *, hours_per_mm: int) -> None:
        self.repo = repo
        self.hours_per_mm = Decimal(hours_per_mm)

    def load_resource_dataset(self, year: int) -> ResourceDataset:
        year_start = date(year, 1, 1)
        year_end = date(year, 12, 31)
        try:
            people = self.repo.list_people()
            projects = self.repo.list_projects(include_archived=True)
            assignments = self.repo.list_assignments_for_projects(project.id for project in projects)
            plan_entries = self.repo.list_plan_entries_between(from_month=year_start, to_month=date(year, 12, 1))
            releases = self.repo.list_releases_due_between(from_date=year_start, to_date=year_end)
            actual_hours = self.repo.sum_actual_hours_by_person_project(from_date=year_start, to_date=year_end)
        except SQLAlchemyError as exc:
            logger.error("Resource dataset for %s could not be loaded: %s", year, exc)
            raise DataUnavailable("Resource data is currently unavailable.") from exc

        assignees: dict[str, list[str]] = {}
        for assignment in assignments:
            assignees.setdefault(str(assignment.project_id), []).append(str(assignment.person_id))

        plans: dict[str, dict[str, dict[str, Decimal]]] = {}
        for entry in plan_entries:
            project_plan = plans.setdefault(str(entry.project_id), {})
            project_plan.setdefault(month_label(entry.month_start), {})[str(entry.person_id)] = entry.planned_mm

        releases_by_project: dict[str, list[ProjectRelease]] = {}
        for release in releases:
            releases_by_project.setdefault(str(release.project_id), []).append(release)

        project_records = []
        for project in projects:
            key = str(project.id)
            chosen = select_release(releases_by_project.get(key, []))
            project_records.append(
                ProjectRecord(
                    id=key,
                    name=project.name,
                    project_type=project.project_type.value,
                    status=project.status.value,
                    assignee_ids=tuple(assignees.get(key, [])),
                    monthly_plan=plans.get(key, {}),
                    release=(
                        ReleaseInfo(
                            name=chosen.name,
                            due=chosen.due_date,
                            total=chosen.total_tickets,
                            closed=chosen.closed_tickets,
                            late_days=chosen.late_days,
                        )
                        if chosen is not None
                        else None
                    ),
                )
            )

        return ResourceDataset(
            people=tuple(
                PersonRecord(id=str(person.id), name=person.display_name, avatar=person.avatar_url)
                for person in people
            ),
            projects=tuple(project_records),
            actual_mm={
                (str(person_id), str(project_id)): (hours / self.hours_per_mm).quantize(Q2)
                for (person_id, project_id), hours in actual_hours.items()
            },
        )


class ResourceService:
    """Serves the yearly person/project matrix of planned and actual MM."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()
        self.source = RepositoryDataSource(self.repo, hours_per_mm=self.settings.hours_per_mm)

    # ---------- Serialization ----------
    @staticmethod
    def _mm(value: Decimal | None) -> str | None:
        return str(value) if value is not None else None

    @classmethod
    def serialize_row(cls, row: MatrixRow) -> dict[str, object]:
        return {
            "row_id": row.row_id,
            "parent_id": row.parent_id,
            "row_type": row.row_type.value,
            "name": row.name,
            "person": (
                {"id": row.person.id, "name": row.person.name, "avatar": row.person.avatar}
                if row.person is not None
                else None
            ),
            "plan_mm": cls._mm(row.plan_mm),
            "actual_mm": cls._mm(row.actual_mm),
            "plan_months": [str(value) for value in row.plan_months],
            "release": (
                {
                    "name": row.release.name,
                    "due": row.release.due.isoformat(),
                    "total": row.release.total,
                    "closed": row.release.closed,
                    "late_days": row.release.late_days,
                }
                if row.release is not None
                else None
            ),
        }

    @classmethod
    def serialize_result(cls, result: MatrixResult, rows: Iterable[MatrixRow] | None = None) -> dict[str, object]:
        return {
            "meta": {
                "year": result.year,
                "group": result.group_by.value,
                "month_columns": list(result.month_columns),
            },
            "rows": [cls.serialize_row(row) for row in (result.rows if rows is None else rows)],
        }

    # ---------- Reads ----------
    def build(self, *, year: int, group_by: GroupBy) -> MatrixResult:
        try:
            result = build_matrix(year, group_by, self.source)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
        logger.info("Built resource matrix year=%s group=%s rows=%s", year, result.group_by.value, len(result.rows))
        return result

    def yearly_matrix(self, *, year: int, group_by: GroupBy) -> dict[str, object]:
        return self.serialize_result(self.build(year=year, group_by=group_by))

    def visible_matrix(
        self,
        *,
        year: int,
        group_by: GroupBy,
        expanded: list[str] | None,
        seed: str = "roots",
    ) -> dict[str, object]:
        result = self.build(year=year, group_by=group_by)
        if expanded is not None:
            expanded_set = frozenset(expanded)
        else:
            normalized_seed = seed.strip().lower()
            if normalized_seed not in SEED_MODES:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="seed must be one of: all, none, roots.",
                )
            if normalized_seed == "roots":
                expanded_set = initial_expansion(result.rows)
            elif normalized_seed == "all":
                expanded_set = expand_all(result.rows)
            else:
                expanded_set = frozenset()

        visible = compute_visible_rows(result.rows, expanded_set)
        payload = self.serialize_result(result, visible)
        payload["expanded"] = sorted(expanded_set)
        return payload

    # ---------- Exports ----------
    def _flatten_rows(self, result: MatrixResult) -> tuple[list[str], list[list[str]]]:
        header = ["row_id", "parent_id", "row_type", "name", "plan_mm", "actual_mm", "delta_mm"]
        header.extend(result.month_columns)

        lines: list[list[str]] = []
        for row in result.rows:
            delta = (row.actual_mm or ZERO) - (row.plan_mm or ZERO)
            lines.append(
                [
                    row.row_id,
                    row.parent_id or "",
                    row.row_type.value,
                    row.name,
                    str(row.plan_mm if row.plan_mm is not None else ""),
                    str(row.actual_mm if row.actual_mm is not None else ""),
                    str(delta.quantize(Q2)),
                    *[str(value) for value in row.plan_months],
                ]
            )
        return header, lines

    def export_matrix(self, *, year: int, group_by: GroupBy, format_name: str) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        result = self.build(year=year, group_by=group_by)
        header, lines = self._flatten_rows(result)
        base_filename = f"resources-{result.group_by.value}-{year}"

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.writer(sio)
            writer.writerow(header)
            writer.writerows(lines)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        # XLSX
        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "resources"
        sheet.append(header)
        for line in lines:
            sheet.append(line)

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
