"""Client-side view state for the hierarchical resource table."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from resplan.services.resource_matrix import (
    GroupBy,
    MatrixResult,
    MatrixRow,
    ResourceDataSource,
    build_matrix,
    children_by_parent,
    collapse_all,
    compute_visible_rows,
    expand_all,
    initial_expansion,
    toggle_expansion,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MatrixTicket:
    generation: int
    year: int
    group_by: GroupBy


class ResourceMatrixView:
    """Holds the current matrix, its expansion set and the latest request.

    Results resolving for anything but the most recently issued ticket are
    discarded, so a slow superseded build never overwrites fresher state.
    """

    def __init__(self) -> None:
        self._generation = 0
        self.result: MatrixResult | None = None
        self.expanded: frozenset[str] = frozenset()
        self.last_error: Exception | None = None
        self._pending: MatrixTicket | None = None

    @property
    def loading(self) -> bool:
        return self._pending is not None

    def begin_request(self, year: int, group_by: GroupBy | str) -> MatrixTicket:
        self._generation += 1
        ticket = MatrixTicket(generation=self._generation, year=year, group_by=GroupBy(group_by))
        self._pending = ticket
        return ticket

    def is_current(self, ticket: MatrixTicket) -> bool:
        return ticket.generation == self._generation

    def complete_request(self, ticket: MatrixTicket, result: MatrixResult) -> bool:
        if not self.is_current(ticket):
            logger.debug(
                "Discarding stale matrix result (generation %s, latest %s)",
                ticket.generation,
                self._generation,
            )
            return False
        self.result = result
        self.expanded = initial_expansion(result.rows)
        self.last_error = None
        self._pending = None
        return True

    def fail_request(self, ticket: MatrixTicket, error: Exception) -> bool:
        if not self.is_current(ticket):
            return False
        self.result = None
        self.expanded = frozenset()
        self.last_error = error
        self._pending = None
        return True

    def load(self, year: int, group_by: GroupBy | str, source: ResourceDataSource) -> MatrixResult:
        ticket = self.begin_request(year, group_by)
        try:
            result = build_matrix(ticket.year, ticket.group_by, source)
        except Exception as exc:
            self.fail_request(ticket, exc)
            raise
        self.complete_request(ticket, result)
        return result

    def toggle(self, row_id: str) -> frozenset[str]:
        self.expanded = toggle_expansion(self.expanded, row_id)
        return self.expanded

    def expand_all(self) -> frozenset[str]:
        self.expanded = expand_all(self.result.rows) if self.result else frozenset()
        return self.expanded

    def collapse_all(self) -> frozenset[str]:
        self.expanded = collapse_all()
        return self.expanded

    def has_children(self, row_id: str) -> bool:
        if self.result is None:
            return False
        return row_id in children_by_parent(self.result.rows)

    def visible_rows(self) -> list[MatrixRow]:
        if self.result is None:
            return []
        return compute_visible_rows(self.result.rows, self.expanded)
