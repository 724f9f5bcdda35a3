from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from resplan.core.errors import DataUnavailable, MalformedHierarchy
from resplan.services.resource_matrix import (
    GroupBy,
    MatrixRow,
    PersonRecord,
    ProjectRecord,
    ReleaseInfo,
    ResourceDataset,
    RowType,
    build_matrix,
    collapse_all,
    compute_visible_rows,
    expand_all,
    initial_expansion,
    month_columns,
    toggle_expansion,
    validate_hierarchy,
)

RELEASE = ReleaseInfo(name="v1.2", due=date(2025, 6, 30), total=40, closed=25, late_days=None)


class StaticSource:
    def __init__(self, dataset: ResourceDataset) -> None:
        self.dataset = dataset
        self.years: list[int] = []

    def load_resource_dataset(self, year: int) -> ResourceDataset:
        self.years.append(year)
        return self.dataset


class FailingSource:
    def load_resource_dataset(self, year: int) -> ResourceDataset:
        raise DataUnavailable("Resource data is currently unavailable.")


def _dataset() -> ResourceDataset:
    return ResourceDataset(
        people=(
            PersonRecord(id="p1", name="Kim"),
            PersonRecord(id="p2", name="Lee", avatar="https://example.test/lee.png"),
            PersonRecord(id="p3", name="Park"),
        ),
        projects=(
            ProjectRecord(
                id="A",
                name="Alpha",
                assignee_ids=("p1", "p2"),
                monthly_plan={
                    "2025-01": {"p1": Decimal("0.50"), "p2": Decimal("1.00")},
                    "2025-02": {"p1": Decimal("0.25")},
                },
                release=RELEASE,
            ),
            ProjectRecord(
                id="B",
                name="Bravo",
                assignee_ids=("p1",),
                monthly_plan={"2025-03": {"p1": Decimal("0.50")}},
            ),
            ProjectRecord(id="C", name="Charlie", assignee_ids=("ghost",)),
        ),
        actual_mm={
            ("p1", "A"): Decimal("0.40"),
            ("p2", "A"): Decimal("0.90"),
            ("p1", "B"): Decimal("0.10"),
        },
    )


def _ids(rows: list[MatrixRow] | tuple[MatrixRow, ...]) -> list[str]:
    return [row.row_id for row in rows]


def _row(row_id: str, parent_id: str | None = None) -> MatrixRow:
    return MatrixRow(row_id=row_id, row_type=RowType.PERSON, name=row_id, plan_months=(), parent_id=parent_id)


def test_month_columns_cover_the_year_in_order() -> None:
    columns = month_columns(2025)

    assert len(columns) == 12
    assert columns[0] == "2025-01"
    assert columns[-1] == "2025-12"
    assert list(columns) == sorted(columns)


def test_month_columns_reject_out_of_range_year() -> None:
    with pytest.raises(ValueError):
        month_columns(0)


def test_person_grouping_flattens_roots_followed_by_their_children() -> None:
    source = StaticSource(_dataset())

    result = build_matrix(2025, GroupBy.PERSON, source)

    assert source.years == [2025]
    assert result.group_by is GroupBy.PERSON
    assert _ids(result.rows) == ["p1", "p1:A", "p1:B", "p2", "p2:A", "p3"]
    assert [row.row_type for row in result.rows] == [
        RowType.PERSON,
        RowType.PROJECT,
        RowType.PROJECT,
        RowType.PERSON,
        RowType.PROJECT,
        RowType.PERSON,
    ]
    assert all(len(row.plan_months) == 12 for row in result.rows)


def test_person_roots_sum_their_children() -> None:
    rows = {row.row_id: row for row in build_matrix(2025, "person", StaticSource(_dataset())).rows}

    kim = rows["p1"]
    assert kim.plan_months[:3] == (Decimal("0.50"), Decimal("0.25"), Decimal("0.50"))
    assert kim.plan_mm == Decimal("1.25")
    assert kim.actual_mm == Decimal("0.50")
    assert kim.person == PersonRecord(id="p1", name="Kim")

    for root_id in ("p1", "p2"):
        children = [row for row in rows.values() if row.parent_id == root_id]
        for index in range(12):
            assert rows[root_id].plan_months[index] == sum(
                (child.plan_months[index] for child in children), Decimal("0")
            )

    park = rows["p3"]
    assert park.plan_mm == Decimal("0")
    assert park.actual_mm == Decimal("0")
    assert set(park.plan_months) == {Decimal("0")}


def test_person_children_carry_project_release() -> None:
    rows = {row.row_id: row for row in build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows}

    assert rows["p1:A"].release == RELEASE
    assert rows["p2:A"].release == RELEASE
    assert rows["p1:B"].release is None
    assert rows["p1"].release is None


def test_project_grouping_skips_unknown_assignees() -> None:
    result = build_matrix(2025, GroupBy.PROJECT, StaticSource(_dataset()))
    rows = {row.row_id: row for row in result.rows}

    assert _ids(result.rows) == ["A", "A:p1", "A:p2", "B", "B:p1", "C"]
    assert rows["A"].release == RELEASE
    assert rows["A"].plan_mm == Decimal("1.75")
    assert rows["A"].actual_mm == Decimal("1.30")
    assert rows["A:p2"].row_type is RowType.PERSON_IN_PROJECT
    assert rows["A:p2"].person.avatar == "https://example.test/lee.png"
    assert rows["C"].plan_mm == Decimal("0")


def test_every_child_parent_is_a_root_of_the_same_result() -> None:
    for group_by in (GroupBy.PERSON, GroupBy.PROJECT):
        rows = build_matrix(2025, group_by, StaticSource(_dataset())).rows
        roots = {row.row_id for row in rows if row.parent_id is None}

        children = [row for row in rows if row.parent_id is not None]
        assert children
        assert all(row.parent_id in roots for row in children)


def test_duplicate_assignees_produce_a_single_child() -> None:
    dataset = ResourceDataset(
        people=(PersonRecord(id="p1", name="Kim"),),
        projects=(ProjectRecord(id="A", name="Alpha", assignee_ids=("p1", "p1")),),
    )

    person_rows = build_matrix(2025, GroupBy.PERSON, StaticSource(dataset)).rows
    project_rows = build_matrix(2025, GroupBy.PROJECT, StaticSource(dataset)).rows

    assert _ids(person_rows) == ["p1", "p1:A"]
    assert _ids(project_rows) == ["A", "A:p1"]


def test_empty_dataset_builds_no_rows() -> None:
    result = build_matrix(2025, GroupBy.PERSON, StaticSource(ResourceDataset()))

    assert result.rows == ()
    assert len(result.month_columns) == 12


def test_invalid_grouping_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_matrix(2025, "team", StaticSource(_dataset()))


def test_unavailable_data_propagates_without_partial_result() -> None:
    with pytest.raises(DataUnavailable):
        build_matrix(2025, GroupBy.PERSON, FailingSource())


def test_visible_rows_show_only_roots_when_nothing_is_expanded() -> None:
    rows = build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows

    assert _ids(compute_visible_rows(rows, frozenset())) == ["p1", "p2", "p3"]


def test_visible_rows_follow_expansion_in_row_order() -> None:
    rows = build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows

    visible = compute_visible_rows(rows, {"p1"})

    assert _ids(visible) == ["p1", "p1:A", "p1:B", "p2", "p3"]
    assert _ids(compute_visible_rows(rows, initial_expansion(rows))) == _ids(rows)


def test_expanding_childless_or_unknown_rows_changes_nothing() -> None:
    rows = build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows

    baseline = compute_visible_rows(rows, frozenset())

    assert compute_visible_rows(rows, {"p3", "p1:A", "missing"}) == baseline


def test_visible_rows_are_repeatable_and_leave_inputs_untouched() -> None:
    rows = build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows
    rows_before = list(rows)
    expanded = {"p1", "p2:A"}

    first = compute_visible_rows(rows, expanded)
    second = compute_visible_rows(rows, expanded)

    assert first == second
    assert list(rows) == rows_before
    assert expanded == {"p1", "p2:A"}


def test_visible_rows_keep_input_order_when_children_are_not_adjacent() -> None:
    rows = [_row("a"), _row("b"), _row("a:1", parent_id="a")]

    assert _ids(compute_visible_rows(rows, {"a"})) == ["a", "b", "a:1"]
    assert _ids(compute_visible_rows(rows, set())) == ["a", "b"]


def test_visible_rows_require_every_ancestor_expanded() -> None:
    rows = [_row("a"), _row("b", parent_id="a"), _row("c", parent_id="b")]

    assert _ids(compute_visible_rows(rows, {"a", "b"})) == ["a", "b", "c"]
    assert _ids(compute_visible_rows(rows, {"a"})) == ["a", "b"]
    assert _ids(compute_visible_rows(rows, {"b"})) == ["a"]


def test_toggle_is_an_involution_and_does_not_mutate_input() -> None:
    expanded = frozenset({"p1"})

    toggled = toggle_expansion(expanded, "p2")

    assert toggled == {"p1", "p2"}
    assert expanded == {"p1"}
    assert toggle_expansion(toggled, "p2") == expanded
    assert toggle_expansion(expanded, "p1") == frozenset()


def test_expand_all_marks_rows_with_children() -> None:
    rows = build_matrix(2025, GroupBy.PERSON, StaticSource(_dataset())).rows

    assert expand_all(rows) == {"p1", "p2"}
    assert initial_expansion(rows) == {"p1", "p2", "p3"}
    assert collapse_all() == frozenset()


def test_validate_hierarchy_rejects_duplicate_ids() -> None:
    with pytest.raises(MalformedHierarchy):
        validate_hierarchy([_row("a"), _row("a")])


def test_validate_hierarchy_rejects_missing_parent() -> None:
    with pytest.raises(MalformedHierarchy):
        compute_visible_rows([_row("a"), _row("b", parent_id="zzz")], frozenset())


def test_validate_hierarchy_rejects_cycles() -> None:
    with pytest.raises(MalformedHierarchy):
        validate_hierarchy([_row("a", parent_id="b"), _row("b", parent_id="a")])


def test_visible_rows_reject_cyclic_rows() -> None:
    with pytest.raises(MalformedHierarchy):
        compute_visible_rows([_row("x", parent_id="y"), _row("y", parent_id="x")], {"x", "y"})


def test_validate_hierarchy_enforces_depth_limit() -> None:
    rows = [_row("a"), _row("b", parent_id="a"), _row("c", parent_id="b")]

    validate_hierarchy(rows)
    with pytest.raises(MalformedHierarchy):
        validate_hierarchy(rows, max_depth=2)
