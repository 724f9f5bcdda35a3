"""My-work summary and personal/team dashboards over plans and worklogs."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from resplan.core.config import get_settings
from resplan.models.entities import MonthlyPlanEntry, Person, Project, Worklog
from resplan.repositories.planning_repository import PlanningRepository
from resplan.services.months import month_end, week_bounds
from resplan.services.project_service import parse_month_or_422

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
HUNDRED = Decimal("100.00")
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
TOP_PROJECTS_LIMIT = 5


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return (numerator / denominator).quantize(Q2)


def plan_achievement(actual: Decimal, plan: Decimal) -> Decimal:
    """PA %: actual over plan, zero when nothing was planned."""

    return _safe_div(actual * HUNDRED, plan)


class DashboardService:
    """Aggregates planned MM and logged hours for one month."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()
        self.hours_per_mm = Decimal(self.settings.hours_per_mm)

    def _to_mm(self, hours: Decimal) -> Decimal:
        return _q2(hours / self.hours_per_mm)

    def _ensure_person(self, person_id: UUID) -> Person:
        person = self.repo.get_person(person_id)
        if person is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Person not found.")
        return person

    def _month_range(self, month: str) -> tuple[date, date]:
        month_start = parse_month_or_422(month)
        return month_start, month_end(month_start)

    def _direct_hours(self, worklogs: Iterable[Worklog]) -> Decimal:
        direct_ids = self.repo.direct_project_ids()
        return sum((log.actual_hours for log in worklogs if log.project_id in direct_ids), ZERO)

    @staticmethod
    def _plan_by_project(entries: Iterable[MonthlyPlanEntry]) -> dict[UUID, Decimal]:
        totals: dict[UUID, Decimal] = {}
        for entry in entries:
            totals[entry.project_id] = totals.get(entry.project_id, ZERO) + entry.planned_mm
        return totals

    def _breakdown(self, values: dict[UUID, Decimal]) -> list[dict[str, str]]:
        projects = self.repo.get_projects(values)
        ranked = sorted(
            ((projects[project_id], value) for project_id, value in values.items() if value > ZERO and project_id in projects),
            key=lambda item: (-item[1], item[0].name),
        )
        return [
            {"project_id": str(project.id), "name": project.name, "value": str(_q2(value))}
            for project, value in ranked[:TOP_PROJECTS_LIMIT]
        ]

    # ---------- My work ----------
    def my_work_summary(self, *, person_id: UUID, month: str, week_of: date | None = None) -> dict[str, object]:
        person = self._ensure_person(person_id)
        month_start, last_day = self._month_range(month)

        plan_entries = self.repo.list_plan_entries_between(
            from_month=month_start, to_month=month_start, person_id=person.id
        )
        plan_mm = _q2(sum((entry.planned_mm for entry in plan_entries), ZERO))

        worklogs = self.repo.list_worklogs(person_id=person.id, from_date=month_start, to_date=last_day)
        actual_hours = sum((log.actual_hours for log in worklogs), ZERO)
        actual_mm = self._to_mm(actual_hours)
        direct_hours = self._direct_hours(worklogs)

        week_start, week_end = week_bounds(week_of or month_start)
        week_logs = self.repo.list_worklogs(person_id=person.id, from_date=week_start, to_date=week_end)
        weekly_plan = sum((log.planned_hours for log in week_logs), ZERO)
        weekly_actual = sum((log.actual_hours for log in week_logs), ZERO)

        return {
            "person_id": str(person.id),
            "month": month_start.strftime("%Y-%m"),
            "monthly_plan_mm": str(plan_mm),
            "monthly_actual_mm": str(actual_mm),
            "monthly_delta_hours": str(_q2(actual_hours - plan_mm * self.hours_per_mm)),
            "monthly_pa": str(plan_achievement(actual_mm, plan_mm)),
            "monthly_direct_share": str(_safe_div(direct_hours * HUNDRED, actual_hours)),
            "project_breakdown": self._breakdown(self._plan_by_project(plan_entries)),
            "week_start": week_start.isoformat(),
            "week_end": week_end.isoformat(),
            "weekly_plan_hours": str(_q2(weekly_plan)),
            "weekly_actual_hours": str(_q2(weekly_actual)),
            "weekly_remaining_hours": str(_q2(max(weekly_plan - weekly_actual, ZERO))),
        }

    # ---------- Shared dashboard series ----------
    def _burnup(self, *, month_start: date, last_day: date, plan_mm: Decimal, worklogs: list[Worklog]) -> list[dict[str, str]]:
        days_in_month = last_day.day
        hours_by_day: dict[date, Decimal] = {}
        for log in worklogs:
            hours_by_day[log.work_date] = hours_by_day.get(log.work_date, ZERO) + log.actual_hours

        step = self.settings.burnup_sample_every_days
        sample_days = list(range(1, days_in_month + 1, step))
        if sample_days[-1] != days_in_month:
            sample_days.append(days_in_month)

        points = []
        cumulative_hours = ZERO
        current = month_start
        for day_number in sample_days:
            target = month_start + timedelta(days=day_number - 1)
            while current <= target:
                cumulative_hours += hours_by_day.get(current, ZERO)
                current += timedelta(days=1)
            points.append(
                {
                    "label": target.strftime("%m-%d"),
                    "cum_plan_mm": str(_q2(plan_mm * Decimal(day_number) / Decimal(days_in_month))),
                    "cum_actual_mm": str(self._to_mm(cumulative_hours)),
                }
            )
        return points

    def _overload(self, worklogs: list[Worklog], people: dict[UUID, Person]) -> list[dict[str, object]]:
        capacity = Decimal(self.settings.daily_capacity_hours)
        daily: dict[tuple[UUID, date], Decimal] = {}
        for log in worklogs:
            key = (log.person_id, log.work_date)
            daily[key] = daily.get(key, ZERO) + log.actual_hours

        overloads = []
        for (person_id, work_date), hours in daily.items():
            if hours <= capacity or person_id not in people:
                continue
            overloads.append(
                {
                    "person_id": str(person_id),
                    "person_name": people[person_id].display_name,
                    "date": work_date.isoformat(),
                    "day_of_week": DAY_NAMES[work_date.weekday()],
                    "actual_hours": str(_q2(hours)),
                    "capacity_hours": str(_q2(capacity)),
                    "overload_pct": str(_safe_div(hours * HUNDRED, capacity)),
                }
            )
        overloads.sort(key=lambda row: (str(row["date"]), str(row["person_name"])))
        return overloads

    def _upcoming_deadlines(self, projects: list[Project], from_date: date) -> list[dict[str, object]]:
        if not projects:
            return []
        names = {project.id: project.name for project in projects}
        releases = self.repo.list_releases_due_between(from_date=from_date, project_ids=names)
        open_releases = [release for release in releases if release.closed_tickets < release.total_tickets]
        return [
            {
                "release_id": str(release.id),
                "project_id": str(release.project_id),
                "project_name": names[release.project_id],
                "name": release.name,
                "due_date": release.due_date.isoformat(),
            }
            for release in open_releases[: self.settings.upcoming_deadlines_limit]
        ]

    # ---------- Dashboards ----------
    def personal_dashboard(self, *, person_id: UUID, month: str) -> dict[str, object]:
        person = self._ensure_person(person_id)
        month_start, last_day = self._month_range(month)

        plan_entries = self.repo.list_plan_entries_between(
            from_month=month_start, to_month=month_start, person_id=person.id
        )
        plan_mm = _q2(sum((entry.planned_mm for entry in plan_entries), ZERO))
        worklogs = self.repo.list_worklogs(person_id=person.id, from_date=month_start, to_date=last_day)
        actual_mm = self._to_mm(sum((log.actual_hours for log in worklogs), ZERO))

        actual_by_project: dict[UUID, Decimal] = {}
        for log in worklogs:
            actual_by_project[log.project_id] = actual_by_project.get(log.project_id, ZERO) + log.actual_hours

        return {
            "scope": "personal",
            "person_id": str(person.id),
            "month": month_start.strftime("%Y-%m"),
            "monthly_plan_mm": str(plan_mm),
            "monthly_actual_mm": str(actual_mm),
            "monthly_pa": str(plan_achievement(actual_mm, plan_mm)),
            "burnup": self._burnup(month_start=month_start, last_day=last_day, plan_mm=plan_mm, worklogs=worklogs),
            "weekly_overload": self._overload(worklogs, {person.id: person}),
            "project_breakdown": self._breakdown(
                {project_id: self._to_mm(hours) for project_id, hours in actual_by_project.items()}
            ),
            "upcoming_deadlines": self._upcoming_deadlines(self.repo.list_projects_for_person(person.id), month_start),
        }

    def team_dashboard(self, *, month: str) -> dict[str, object]:
        month_start, last_day = self._month_range(month)
        people = self.repo.list_people(active_only=True)
        plan_entries = self.repo.list_plan_entries_between(from_month=month_start, to_month=month_start)
        worklogs = self.repo.list_worklogs(from_date=month_start, to_date=last_day)

        plan_by_person: dict[UUID, Decimal] = {}
        for entry in plan_entries:
            plan_by_person[entry.person_id] = plan_by_person.get(entry.person_id, ZERO) + entry.planned_mm
        hours_by_person: dict[UUID, Decimal] = {}
        for log in worklogs:
            hours_by_person[log.person_id] = hours_by_person.get(log.person_id, ZERO) + log.actual_hours

        team_summary = []
        for person in people:
            person_plan = _q2(plan_by_person.get(person.id, ZERO))
            person_actual = self._to_mm(hours_by_person.get(person.id, ZERO))
            team_summary.append(
                {
                    "person_id": str(person.id),
                    "person_name": person.display_name,
                    "plan_mm": str(person_plan),
                    "actual_mm": str(person_actual),
                    "pa": str(plan_achievement(person_actual, person_plan)),
                }
            )

        roster = {person.id: person for person in people}
        plan_mm = _q2(sum((plan_by_person.get(person_id, ZERO) for person_id in roster), ZERO))
        team_logs = [log for log in worklogs if log.person_id in roster]
        actual_mm = self._to_mm(sum((log.actual_hours for log in team_logs), ZERO))

        return {
            "scope": "team",
            "month": month_start.strftime("%Y-%m"),
            "monthly_plan_mm": str(plan_mm),
            "monthly_actual_mm": str(actual_mm),
            "monthly_pa": str(plan_achievement(actual_mm, plan_mm)),
            "burnup": self._burnup(month_start=month_start, last_day=last_day, plan_mm=plan_mm, worklogs=team_logs),
            "weekly_overload": self._overload(team_logs, roster),
            "team_summary": team_summary,
        }
