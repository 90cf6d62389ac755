"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_id", sa.String(length=40), nullable=False),
        sa.Column("academic_year", sa.Integer(), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=False),
        sa.Column("course_number", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("credits_min", sa.Integer(), nullable=False),
        sa.Column("credits_max", sa.Integer(), nullable=False),
        sa.Column("attributes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_catalog_course", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("credits_min <= credits_max", name="ck_courses_credit_range"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("course_id", "academic_year", name="uq_courses_course_id_year"),
    )
    op.create_index("ix_courses_subject_code", "courses", ["subject_code"], unique=False)

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("class_id", sa.String(length=60), nullable=False),
        sa.Column("course_id", sa.String(length=40), nullable=True),
        sa.Column("term_code", sa.String(length=20), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=False),
        sa.Column("course_number", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("credits_min", sa.Integer(), nullable=False),
        sa.Column("credits_max", sa.Integer(), nullable=False),
        sa.Column("attributes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("class_id"),
    )
    op.create_index("ix_classes_term_code", "classes", ["term_code"], unique=False)

    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("program_id", sa.String(length=120), nullable=False),
        sa.Column("academic_year", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("total_credits", sa.Integer(), nullable=False),
        sa.Column("requirements", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "academic_year", name="uq_programs_program_id_year"),
    )

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_year", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "planned_courses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("catalog_course_id", sa.Integer(), nullable=True),
        sa.Column("class_offering_id", sa.Integer(), nullable=True),
        sa.Column("course_code", sa.String(length=60), nullable=False),
        sa.Column("semester_number", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["catalog_course_id"], ["courses.id"]),
        sa.ForeignKeyConstraint(["class_offering_id"], ["classes.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_planned_courses_plan_order",
        "planned_courses",
        ["plan_id", "semester_number", "position"],
        unique=False,
    )

    op.create_table(
        "plan_programs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("program_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plan_id", "program_id", name="uq_plan_programs_plan_program"),
    )

    op.create_table(
        "requirement_fulfillments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("plan_program_id", sa.Integer(), nullable=False),
        sa.Column("requirement_id", sa.String(length=255), nullable=False),
        sa.Column("planned_course_id", sa.Integer(), nullable=False),
        sa.Column("credits_applied", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["plan_program_id"], ["plan_programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["planned_course_id"], ["planned_courses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "plan_program_id",
            "requirement_id",
            "planned_course_id",
            name="uq_requirement_fulfillments_assignment",
        ),
    )
    op.create_index(
        "ix_requirement_fulfillments_plan_program_id",
        "requirement_fulfillments",
        ["plan_program_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_requirement_fulfillments_plan_program_id", table_name="requirement_fulfillments")
    op.drop_table("requirement_fulfillments")
    op.drop_table("plan_programs")
    op.drop_index("ix_planned_courses_plan_order", table_name="planned_courses")
    op.drop_table("planned_courses")
    op.drop_table("plans")
    op.drop_table("programs")
    op.drop_index("ix_classes_term_code", table_name="classes")
    op.drop_table("classes")
    op.drop_index("ix_courses_subject_code", table_name="courses")
    op.drop_table("courses")
