"""ORM model package."""

from resplan.models.entities import (
    Evaluation,
    EvaluationScore,
    MonthlyPlanEntry,
    Person,
    Project,
    ProjectAssignment,
    ProjectRelease,
    Worklog,
)

__all__ = [
    "Evaluation",
    "EvaluationScore",
    "MonthlyPlanEntry",
    "Person",
    "Project",
    "ProjectAssignment",
    "ProjectRelease",
    "Worklog",
]
