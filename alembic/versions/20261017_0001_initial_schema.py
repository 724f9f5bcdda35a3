"""initial schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


project_type = postgresql.ENUM("project", "direct", name="project_type", create_type=False)
project_status = postgresql.ENUM("active", "archived", name="project_status", create_type=False)
worklog_status = postgresql.ENUM("draft", "confirmed", name="worklog_status", create_type=False)
worklog_source = postgresql.ENUM("manual", "jira", "calendar", name="worklog_source", create_type=False)
evaluation_status = postgresql.ENUM("draft", "confirmed", name="evaluation_status", create_type=False)


def upgrade() -> None:
    project_type.create(op.get_bind(), checkfirst=True)
    project_status.create(op.get_bind(), checkfirst=True)
    worklog_status.create(op.get_bind(), checkfirst=True)
    worklog_source.create(op.get_bind(), checkfirst=True)
    evaluation_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "people",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("role_title", sa.String(length=128), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_people_sort_order", "people", ["sort_order"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("project_type", project_type, nullable=False),
        sa.Column("status", project_status, nullable=False),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("plan_doc_title", sa.String(length=255), nullable=True),
        sa.Column("plan_doc_version", sa.String(length=32), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_projects_date_range"),
    )
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "project_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("sequence_no", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_project_assignments_project_id", "project_assignments", ["project_id"])
    op.create_index("ix_project_assignments_person_id", "project_assignments", ["person_id"])
    op.create_unique_constraint(
        "uq_project_assignments_project_person",
        "project_assignments",
        ["project_id", "person_id"],
    )

    op.create_table(
        "monthly_plan_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("month_start", sa.Date(), nullable=False),
        sa.Column("planned_mm", sa.Numeric(6, 2), nullable=False),
        sa.CheckConstraint("planned_mm >= 0", name="ck_monthly_plan_planned_mm_non_negative"),
    )
    op.create_index("ix_monthly_plan_project_month", "monthly_plan_entries", ["project_id", "month_start"])
    op.create_index("ix_monthly_plan_person_month", "monthly_plan_entries", ["person_id", "month_start"])
    op.create_unique_constraint(
        "uq_monthly_plan_project_person_month",
        "monthly_plan_entries",
        ["project_id", "person_id", "month_start"],
    )

    op.create_table(
        "project_releases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("total_tickets", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("closed_tickets", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("late_days", sa.Integer(), nullable=True),
        sa.CheckConstraint("total_tickets >= 0", name="ck_project_releases_total_non_negative"),
        sa.CheckConstraint("closed_tickets >= 0", name="ck_project_releases_closed_non_negative"),
        sa.CheckConstraint("closed_tickets <= total_tickets", name="ck_project_releases_closed_within_total"),
    )
    op.create_index("ix_project_releases_project_due", "project_releases", ["project_id", "due_date"])

    op.create_table(
        "worklogs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("task", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("planned_hours", sa.Numeric(5, 2), nullable=False),
        sa.Column("actual_hours", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", worklog_status, nullable=False),
        sa.Column("source", worklog_source, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("planned_hours >= 0 AND planned_hours <= 24", name="ck_worklogs_planned_hours_range"),
        sa.CheckConstraint("actual_hours >= 0 AND actual_hours <= 24", name="ck_worklogs_actual_hours_range"),
    )
    op.create_index("ix_worklogs_person_date", "worklogs", ["person_id", "work_date"])
    op.create_index("ix_worklogs_project_date", "worklogs", ["project_id", "work_date"])

    op.create_table(
        "evaluations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("month_start", sa.Date(), nullable=False),
        sa.Column("status", evaluation_status, nullable=False),
        sa.Column("metrics", postgresql.JSONB(), nullable=False),
        sa.Column("final_comment", sa.String(length=8000), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_evaluations_person_month", "evaluations", ["person_id", "month_start"])
    op.create_unique_constraint("uq_evaluations_person_month", "evaluations", ["person_id", "month_start"])

    op.create_table(
        "evaluation_scores",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "evaluation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("evaluations.id"),
            nullable=False,
        ),
        sa.Column("criterion_key", sa.String(length=64), nullable=False),
        sa.Column("score", sa.Numeric(3, 1), nullable=False),
        sa.Column("comment", sa.String(length=4000), nullable=False, server_default=""),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="ck_evaluation_scores_score_range"),
    )
    op.create_unique_constraint(
        "uq_evaluation_scores_evaluation_criterion",
        "evaluation_scores",
        ["evaluation_id", "criterion_key"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_evaluation_scores_evaluation_criterion", "evaluation_scores", type_="unique")
    op.drop_table("evaluation_scores")

    op.drop_constraint("uq_evaluations_person_month", "evaluations", type_="unique")
    op.drop_index("ix_evaluations_person_month", table_name="evaluations")
    op.drop_table("evaluations")

    op.drop_index("ix_worklogs_project_date", table_name="worklogs")
    op.drop_index("ix_worklogs_person_date", table_name="worklogs")
    op.drop_table("worklogs")

    op.drop_index("ix_project_releases_project_due", table_name="project_releases")
    op.drop_table("project_releases")

    op.drop_constraint("uq_monthly_plan_project_person_month", "monthly_plan_entries", type_="unique")
    op.drop_index("ix_monthly_plan_person_month", table_name="monthly_plan_entries")
    op.drop_index("ix_monthly_plan_project_month", table_name="monthly_plan_entries")
    op.drop_table("monthly_plan_entries")

    op.drop_constraint("uq_project_assignments_project_person", "project_assignments", type_="unique")
    op.drop_index("ix_project_assignments_person_id", table_name="project_assignments")
    op.drop_index("ix_project_assignments_project_id", table_name="project_assignments")
    op.drop_table("project_assignments")

    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_people_sort_order", table_name="people")
    op.drop_table("people")

    evaluation_status.drop(op.get_bind(), checkfirst=True)
    worklog_source.drop(op.get_bind(), checkfirst=True)
    worklog_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
    project_type.drop(op.get_bind(), checkfirst=True)
