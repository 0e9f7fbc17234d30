# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial school database schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-15
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _fk(name: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _deleted_at() -> sa.Column:
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def _payment_columns(requires_payment_default: str) -> list[sa.Column]:
    return [
        sa.Column(
            "requires_payment",
            sa.Boolean,
            nullable=False,
            server_default=requires_payment_default,
        ),
        sa.Column("payment_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_approved", sa.Boolean, nullable=True),
    ]


def upgrade() -> None:
    """Create school database tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # USERS AND PROFILES
    # =========================================================================

    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(100), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "students",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("student_number", sa.String(20), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("paternal_surname", sa.String(100), nullable=False),
        sa.Column("maternal_surname", sa.String(100), nullable=True),
        sa.Column("program", sa.String(150), nullable=False),
        sa.Column("semester", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("curp", sa.String(18), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("current_english_level", sa.Integer, nullable=True),
        sa.Column("certified_english_level", sa.Integer, nullable=True),
        sa.Column("english_percentage", sa.Float, nullable=True),
        sa.Column("english_average", sa.Float, nullable=True),
        sa.Column(
            "meets_english_requirement", sa.Boolean, nullable=False, server_default="false"
        ),
        sa.Column("diagnostic_exam_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("general_average", sa.Float, nullable=True),
        sa.Column("credits_taken", sa.Integer, nullable=False, server_default="0"),
        sa.Column("credits_passed", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        _deleted_at(),
        sa.UniqueConstraint("user_id", name="uq_students_user_id"),
    )
    op.create_index("ix_students_status", "students", ["status"])
    op.create_index("ix_students_program", "students", ["program"])

    op.create_table(
        "teachers",
        _id(),
        _fk("user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("paternal_surname", sa.String(100), nullable=False),
        sa.Column("maternal_surname", sa.String(100), nullable=True),
        sa.Column("department", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("academic_degree", sa.String(100), nullable=True),
        sa.Column("specialty", sa.String(150), nullable=True),
        sa.Column("contract_type", sa.String(50), nullable=True),
        sa.Column("hire_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        _deleted_at(),
        sa.UniqueConstraint("user_id", name="uq_teachers_user_id"),
    )

    # =========================================================================
    # CURRICULUM
    # =========================================================================

    op.create_table(
        "subjects",
        _id(),
        sa.Column("code", sa.String(30), unique=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("credits", sa.Integer, nullable=False, server_default="0"),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
        _deleted_at(),
    )

    op.create_table(
        "class_groups",
        _id(),
        _fk("subject_id", "subjects.id", "RESTRICT"),
        _fk("teacher_id", "teachers.id", "RESTRICT"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(50), unique=True, nullable=True),
        sa.Column("period", sa.String(20), nullable=False),
        sa.Column("max_capacity", sa.Integer, nullable=False, server_default="30"),
        sa.Column("min_capacity", sa.Integer, nullable=False, server_default="5"),
        sa.Column("current_enrollment", sa.Integer, nullable=False, server_default="0"),
        sa.Column("schedule", sa.String(200), nullable=True),
        sa.Column("classroom", sa.String(50), nullable=True),
        sa.Column("building", sa.String(50), nullable=True),
        sa.Column("modality", sa.String(20), nullable=False, server_default="in_person"),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("is_english_course", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("english_level", sa.Integer, nullable=True),
        sa.Column("registration_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("registration_end", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.CheckConstraint("current_enrollment >= 0", name="ck_class_groups_enrollment"),
    )
    op.create_index("ix_class_groups_subject_id", "class_groups", ["subject_id"])
    op.create_index("ix_class_groups_teacher_id", "class_groups", ["teacher_id"])
    op.create_index("ix_class_groups_period", "class_groups", ["period"])

    # =========================================================================
    # LEGACY ENROLLMENTS
    # =========================================================================

    op.create_table(
        "enrollments",
        _id(),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        _fk("student_id", "students.id", "CASCADE"),
        _fk("group_id", "class_groups.id", "CASCADE"),
        sa.Column("enrollment_type", sa.String(30), nullable=False, server_default="normal"),
        sa.Column("status", sa.String(30), nullable=False, server_default="enrolled"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("partial_grade_1", sa.Float, nullable=True),
        sa.Column("partial_grade_2", sa.Float, nullable=True),
        sa.Column("partial_grade_3", sa.Float, nullable=True),
        sa.Column("final_grade", sa.Float, nullable=True),
        sa.Column("extraordinary_grade", sa.Float, nullable=True),
        sa.Column("grade", sa.Float, nullable=True),
        sa.Column("passed", sa.Boolean, nullable=True),
        sa.Column("pass_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attendances", sa.Integer, nullable=False, server_default="0"),
        sa.Column("absences", sa.Integer, nullable=False, server_default="0"),
        sa.Column("tardies", sa.Integer, nullable=False, server_default="0"),
        sa.Column("attendance_percentage", sa.Float, nullable=True),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.Column("english_level", sa.Integer, nullable=True),
        *_payment_columns("false"),
        sa.Column("payment_proof_url", sa.String(500), nullable=True),
        sa.Column("payment_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("updated_by", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_group_id", "enrollments", ["group_id"])
    op.create_index("ix_enrollments_status", "enrollments", ["status"])

    # =========================================================================
    # ACADEMIC ACTIVITIES
    # =========================================================================

    op.create_table(
        "exam_periods",
        _id(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_capacity", sa.Integer, nullable=False, server_default="100"),
        sa.Column("current_enrollment", sa.Integer, nullable=False, server_default="0"),
        sa.Column("requires_payment", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="planned"),
        sa.Column("created_by", sa.String(36), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )

    op.create_table(
        "academic_activities",
        _id(),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        _fk("student_id", "students.id", "CASCADE"),
        sa.Column("activity_type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="enrolled"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("updated_by", sa.String(36), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    op.create_index(
        "ix_academic_activities_student_id", "academic_activities", ["student_id"]
    )
    op.create_index(
        "ix_academic_activities_activity_type", "academic_activities", ["activity_type"]
    )

    op.create_table(
        "activity_history",
        _id(),
        _fk("activity_id", "academic_activities.id", "CASCADE"),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("field_name", sa.String(50), nullable=True),
        sa.Column("old_value", sa.Text, nullable=True),
        sa.Column("new_value", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("performed_by", sa.String(36), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_activity_history_activity_id", "activity_history", ["activity_id"])

    op.create_table(
        "exams",
        _id(),
        _fk("activity_id", "academic_activities.id", "CASCADE"),
        sa.Column("exam_type", sa.String(20), nullable=False),
        _fk("subject_id", "subjects.id", "SET NULL", nullable=True),
        _fk("period_id", "exam_periods.id", "SET NULL", nullable=True),
        sa.Column("english_level", sa.Integer, nullable=True),
        sa.Column("result", sa.Float, nullable=True),
        sa.Column("assigned_level", sa.Integer, nullable=True),
        sa.Column("exam_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("evaluated_by", sa.String(36), nullable=True),
        *_payment_columns("false"),
        sa.Column("payment_approved_by", sa.String(36), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("activity_id", name="uq_exams_activity_id"),
    )
    op.create_index("ix_exams_period_id", "exams", ["period_id"])

    op.create_table(
        "special_courses",
        _id(),
        _fk("activity_id", "academic_activities.id", "CASCADE"),
        sa.Column("course_type", sa.String(30), nullable=False),
        sa.Column("english_level", sa.Integer, nullable=True),
        _fk("group_id", "class_groups.id", "SET NULL", nullable=True),
        sa.Column("grade", sa.Float, nullable=True),
        sa.Column("passed", sa.Boolean, nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        *_payment_columns("true"),
        sa.Column("payment_approved_by", sa.String(36), nullable=True),
        sa.Column(
            "completed_by_diagnostic", sa.Boolean, nullable=False, server_default="false"
        ),
        _fk("source_exam_id", "exams.id", "SET NULL", nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("activity_id", name="uq_special_courses_activity_id"),
    )
    op.create_index("ix_special_courses_group_id", "special_courses", ["group_id"])


def downgrade() -> None:
    """Drop school database tables."""
    op.drop_table("special_courses")
    op.drop_table("exams")
    op.drop_table("activity_history")
    op.drop_table("academic_activities")
    op.drop_table("exam_periods")
    op.drop_table("enrollments")
    op.drop_table("class_groups")
    op.drop_table("subjects")
    op.drop_table("teachers")
    op.drop_table("students")
    op.drop_table("users")
