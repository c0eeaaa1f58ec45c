"""add student lesson progress table

Revision ID: student_progress_2026
Revises: initial_schema_2026
Create Date: 2026-10-18 15:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "student_progress_2026"
down_revision = "initial_schema_2026"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "student_progress",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lesson_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("student_id", "lesson_id", name="uq_student_progress_student_lesson"),
    )
    op.create_index("ix_student_progress_student_id", "student_progress", ["student_id"])
    op.create_index("ix_student_progress_subject_id", "student_progress", ["subject_id"])


def downgrade():
    op.drop_index("ix_student_progress_subject_id", table_name="student_progress")
    op.drop_index("ix_student_progress_student_id", table_name="student_progress")
    op.drop_table("student_progress")
