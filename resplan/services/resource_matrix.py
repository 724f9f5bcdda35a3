"""Resource matrix: yearly plan/actual rollup as a two-level row forest.

``build_matrix`` pivots people, projects and monthly plans into display rows
flattened in pre-order (root, its children, next root, ...). Expansion state
is a plain ``frozenset`` of row ids; ``compute_visible_rows`` filters the
flattened forest down to what a hierarchical table shows for that state.

Root totals are the elementwise sum of their children. A root without
children carries zero totals.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol

from resplan.core.errors import MalformedHierarchy
from resplan.services.months import month_label, year_months

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
MATRIX_DEPTH = 2


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


class GroupBy(str, enum.Enum):
    PERSON = "person"
    PROJECT = "project"


class RowType(str, enum.Enum):
    SUMMARY = "summary"
    PROJECT = "project"
    PERSON = "person"
    PERSON_IN_PROJECT = "person_in_project"
    DIRECT = "direct"


@dataclass(frozen=True, slots=True)
class PersonRecord:
    id: str
    name: str
    avatar: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    name: str
    due: date
    total: int
    closed: int
    late_days: int | None = None


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    id: str
    name: str
    assignee_ids: tuple[str, ...] = ()
    # month label -> person id -> planned MM; missing entries mean zero
    monthly_plan: Mapping[str, Mapping[str, Decimal]] = field(default_factory=dict)
    project_type: str = "project"
    status: str = "active"
    release: ReleaseInfo | None = None

    def planned_mm(self, month: str, person_id: str) -> Decimal:
        return Decimal(self.monthly_plan.get(month, {}).get(person_id, ZERO))


@dataclass(frozen=True, slots=True)
class ResourceDataset:
    people: tuple[PersonRecord, ...] = ()
    projects: tuple[ProjectRecord, ...] = ()
    # (person id, project id) -> actual MM for the requested year
    actual_mm: Mapping[tuple[str, str], Decimal] = field(default_factory=dict)


class ResourceDataSource(Protocol):
    """Data-access collaborator consumed by ``build_matrix``.

    Implementations raise ``DataUnavailable`` when the dataset cannot be read.
    """

    def load_resource_dataset(self, year: int) -> ResourceDataset: ...


@dataclass(frozen=True, slots=True)
class MatrixRow:
    row_id: str
    row_type: RowType
    name: str
    plan_months: tuple[Decimal, ...]
    parent_id: str | None = None
    person: PersonRecord | None = None
    plan_mm: Decimal | None = None
    actual_mm: Decimal | None = None
    release: ReleaseInfo | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True, slots=True)
class MatrixResult:
    year: int
    group_by: GroupBy
    month_columns: tuple[str, ...]
    rows: tuple[MatrixRow, ...]


def month_columns(year: int) -> tuple[str, ...]:
    """Twelve ``YYYY-MM`` labels of ``year``, January first."""

    if not 1 <= year <= 9999:
        raise ValueError("year must be between 1 and 9999.")
    return tuple(month_label(month) for month in year_months(year))


def _child_row(
    *,
    row_id: str,
    parent_id: str,
    row_type: RowType,
    name: str,
    plan_months: tuple[Decimal, ...],
    actual_mm: Decimal,
    person: PersonRecord | None = None,
    release: ReleaseInfo | None = None,
) -> MatrixRow:
    return MatrixRow(
        row_id=row_id,
        parent_id=parent_id,
        row_type=row_type,
        name=name,
        person=person,
        plan_months=plan_months,
        plan_mm=_q2(sum(plan_months, ZERO)),
        actual_mm=_q2(actual_mm),
        release=release,
    )


def _rollup_row(
    *,
    row_id: str,
    row_type: RowType,
    name: str,
    children: Sequence[MatrixRow],
    columns: Sequence[str],
    person: PersonRecord | None = None,
    release: ReleaseInfo | None = None,
) -> MatrixRow:
    plan_months = tuple(
        _q2(sum((child.plan_months[index] for child in children), ZERO)) for index in range(len(columns))
    )
    return MatrixRow(
        row_id=row_id,
        row_type=row_type,
        name=name,
        person=person,
        plan_months=plan_months,
        plan_mm=_q2(sum((child.plan_mm or ZERO for child in children), ZERO)),
        actual_mm=_q2(sum((child.actual_mm or ZERO for child in children), ZERO)),
        release=release,
    )


def _plan_months(project: ProjectRecord, person_id: str, columns: Sequence[str]) -> tuple[Decimal, ...]:
    return tuple(_q2(project.planned_mm(month, person_id)) for month in columns)


def _project_row_type(project: ProjectRecord) -> RowType:
    return RowType.DIRECT if project.project_type == "direct" else RowType.PROJECT


def _rows_by_person(dataset: ResourceDataset, columns: Sequence[str]) -> list[MatrixRow]:
    projects_by_person: dict[str, list[ProjectRecord]] = {}
    for project in dataset.projects:
        for person_id in dict.fromkeys(project.assignee_ids):
            projects_by_person.setdefault(person_id, []).append(project)

    rows: list[MatrixRow] = []
    for person in dataset.people:
        children = [
            _child_row(
                row_id=f"{person.id}:{project.id}",
                parent_id=person.id,
                row_type=_project_row_type(project),
                name=project.name,
                plan_months=_plan_months(project, person.id, columns),
                actual_mm=dataset.actual_mm.get((person.id, project.id), ZERO),
                release=project.release,
            )
            for project in projects_by_person.get(person.id, [])
        ]
        rows.append(
            _rollup_row(
                row_id=person.id,
                row_type=RowType.PERSON,
                name=person.name,
                person=person,
                children=children,
                columns=columns,
            )
        )
        rows.extend(children)
    return rows


def _rows_by_project(dataset: ResourceDataset, columns: Sequence[str]) -> list[MatrixRow]:
    roster = {person.id: person for person in dataset.people}

    rows: list[MatrixRow] = []
    for project in dataset.projects:
        children = [
            _child_row(
                row_id=f"{project.id}:{person_id}",
                parent_id=project.id,
                row_type=RowType.PERSON_IN_PROJECT,
                name=roster[person_id].name,
                person=roster[person_id],
                plan_months=_plan_months(project, person_id, columns),
                actual_mm=dataset.actual_mm.get((person_id, project.id), ZERO),
            )
            for person_id in dict.fromkeys(project.assignee_ids)
            if person_id in roster
        ]
        rows.append(
            _rollup_row(
                row_id=project.id,
                row_type=_project_row_type(project),
                name=project.name,
                children=children,
                columns=columns,
                release=project.release,
            )
        )
        rows.extend(children)
    return rows


def build_matrix(year: int, group_by: GroupBy | str, source: ResourceDataSource) -> MatrixResult:
    """Build the yearly resource matrix for ``group_by``.

    ``DataUnavailable`` raised by ``source`` propagates; no partial result is
    produced. The returned forest is validated before it is handed out.
    """

    group = GroupBy(group_by)
    columns = month_columns(year)
    dataset = source.load_resource_dataset(year)

    if group is GroupBy.PERSON:
        rows = _rows_by_person(dataset, columns)
    else:
        rows = _rows_by_project(dataset, columns)

    validate_hierarchy(rows, max_depth=MATRIX_DEPTH)
    return MatrixResult(year=year, group_by=group, month_columns=columns, rows=tuple(rows))


def validate_hierarchy(rows: Sequence[MatrixRow], *, max_depth: int | None = None) -> None:
    """Raise ``MalformedHierarchy`` unless ``rows`` form a well-shaped forest."""

    by_id: dict[str, MatrixRow] = {}
    for row in rows:
        if row.row_id in by_id:
            raise MalformedHierarchy(f"Duplicate row id {row.row_id!r}.")
        by_id[row.row_id] = row

    for row in rows:
        chain = {row.row_id}
        depth = 1
        parent_id = row.parent_id
        while parent_id is not None:
            parent = by_id.get(parent_id)
            if parent is None:
                raise MalformedHierarchy(f"Row {row.row_id!r} references missing parent {parent_id!r}.")
            if parent_id in chain:
                raise MalformedHierarchy(f"Cycle in parent chain of row {row.row_id!r}.")
            chain.add(parent_id)
            depth += 1
            if max_depth is not None and depth > max_depth:
                raise MalformedHierarchy(f"Row {row.row_id!r} is nested deeper than {max_depth} levels.")
            parent_id = parent.parent_id


def children_by_parent(rows: Sequence[MatrixRow]) -> dict[str, list[MatrixRow]]:
    children: dict[str, list[MatrixRow]] = {}
    for row in rows:
        if row.parent_id is not None:
            children.setdefault(row.parent_id, []).append(row)
    return children


def compute_visible_rows(rows: Sequence[MatrixRow], expanded: Set[str]) -> list[MatrixRow]:
    """Rows shown for the expansion set ``expanded``, in input order.

    Roots are always visible; any other row is visible only while every one
    of its ancestors is expanded. Inputs are never mutated.
    """

    validate_hierarchy(rows)
    by_id = {row.row_id: row for row in rows}

    def is_visible(row: MatrixRow) -> bool:
        parent_id = row.parent_id
        while parent_id is not None:
            if parent_id not in expanded:
                return False
            parent_id = by_id[parent_id].parent_id
        return True

    return [row for row in rows if is_visible(row)]


def toggle_expansion(expanded: Set[str], row_id: str) -> frozenset[str]:
    return frozenset(expanded).symmetric_difference((row_id,))


def initial_expansion(rows: Sequence[MatrixRow]) -> frozenset[str]:
    return frozenset(row.row_id for row in rows if row.parent_id is None)


def expand_all(rows: Sequence[MatrixRow]) -> frozenset[str]:
    return frozenset(children_by_parent(rows))


def collapse_all() -> frozenset[str]:
    return frozenset()
