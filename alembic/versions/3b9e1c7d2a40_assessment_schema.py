"""assessment schema

Revision ID: 3b9e1c7d2a40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID = postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
    )
    op.create_table(
        "courses",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("objectives", sa.Text(), nullable=False, server_default=""),
        sa.Column("instructor_id", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "instructor_name", sa.String(length=255), nullable=False, server_default=""
        ),
    )
    op.create_table(
        "lectures",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_lectures_course_id", "lectures", ["course_id"])
    op.create_table(
        "course_progress",
        sa.Column("student_id", _UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.Integer(), nullable=True),
    )
    op.create_table(
        "lecture_views",
        sa.Column("student_id", _UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("lecture_id", _UUID, sa.ForeignKey("lectures.id"), primary_key=True),
        sa.Column("viewed_at", sa.Integer(), nullable=False),
    )
    op.create_table(
        "quizzes",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("instructor_id", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("lecture_id", _UUID, sa.ForeignKey("lectures.id"), nullable=True),
        sa.Column("completion_key", sa.String(length=64), nullable=True, unique=True),
        sa.Column("settings_json", sa.Text(), nullable=False),
        sa.Column("total_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.Integer(), nullable=False),
    )
    op.create_index("ix_quizzes_course_id", "quizzes", ["course_id"])
    op.create_table(
        "questions",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("quiz_id", _UUID, sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("options_json", sa.Text(), nullable=True),
        sa.Column("correct_answer", sa.Text(), nullable=True),
        sa.Column("points", sa.Float(), nullable=False, server_default="1"),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_index("ix_questions_quiz_id", "questions", ["quiz_id"])
    op.create_table(
        "quiz_attempts",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("quiz_id", _UUID, sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("student_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="in_progress"),
        sa.Column("started_at", sa.Integer(), nullable=False),
        sa.Column("submitted_at", sa.Integer(), nullable=True),
        sa.Column("graded_at", sa.Integer(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_earned", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Float(), nullable=False, server_default="0"),
        sa.Column("feedback", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("quiz_id", "student_id", "attempt_number"),
    )
    op.create_index(
        "uq_quiz_attempts_one_open",
        "quiz_attempts",
        ["quiz_id", "student_id"],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
    )
    op.create_index(
        "ix_quiz_attempts_course_student", "quiz_attempts", ["course_id", "student_id"]
    )
    op.create_table(
        "attempt_answers",
        sa.Column("attempt_id", _UUID, sa.ForeignKey("quiz_attempts.id"), primary_key=True),
        sa.Column("question_id", _UUID, sa.ForeignKey("questions.id"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("points_awarded", sa.Float(), nullable=False, server_default="0"),
        sa.Column("feedback", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "certificates",
        sa.Column("certificate_id", sa.String(length=64), primary_key=True),
        sa.Column("student_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("student_name", sa.String(length=255), nullable=False),
        sa.Column("course_name", sa.String(length=500), nullable=False),
        sa.Column("instructor_name", sa.String(length=255), nullable=False),
        sa.Column("completion_date", sa.Integer(), nullable=False),
        sa.Column("issue_date", sa.Integer(), nullable=False),
        sa.Column("expiry_date", sa.Integer(), nullable=True),
        sa.Column("course_duration", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.UniqueConstraint("student_id", "course_id"),
    )


def downgrade() -> None:
    op.drop_table("certificates")
    op.drop_table("attempt_answers")
    op.drop_index("ix_quiz_attempts_course_student", table_name="quiz_attempts")
    op.drop_index("uq_quiz_attempts_one_open", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("ix_questions_quiz_id", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_quizzes_course_id", table_name="quizzes")
    op.drop_table("quizzes")
    op.drop_table("lecture_views")
    op.drop_table("course_progress")
    op.drop_index("ix_lectures_course_id", table_name="lectures")
    op.drop_table("lectures")
    op.drop_table("courses")
    op.drop_table("users")
