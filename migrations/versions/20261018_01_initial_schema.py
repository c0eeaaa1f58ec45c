"""initial e-learning schema

Revision ID: initial_schema_2026
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "initial_schema_2026"
down_revision = None
branch_labels = None
depends_on = None

role_enum = sa.Enum("student", "admin", name="role")
quiz_kind_enum = sa.Enum("daily", "monthly", "semester", name="quizkind")
question_kind_enum = sa.Enum("multiple_choice", "short_answer", "essay", name="questionkind")
discount_type_enum = sa.Enum("percentage", "fixed", name="discounttype")


def _uuid(name, *args, **kwargs):
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("last_signed_in", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "subjects",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("number_of_days", sa.Integer(), nullable=False),
        sa.Column("curriculum", sa.Text(), nullable=True),
        sa.Column("curriculum_url", sa.Text(), nullable=True),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "lessons",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("subject_id", sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_lessons_subject_id", "lessons", ["subject_id"])

    op.create_table(
        "quizzes",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("subject_id", sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("kind", quiz_kind_enum, nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("results_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("model_answer_text", sa.Text(), nullable=True),
        sa.Column("model_answer_attachment", sa.Text(), nullable=True),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_quizzes_subject_id", "quizzes", ["subject_id"])

    op.create_table(
        "quiz_questions",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("quiz_id", sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("kind", question_kind_enum, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("reference_answer_text", sa.Text(), nullable=True),
        sa.Column("reference_answer_attachment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_quiz_questions_quiz_id", "quiz_questions", ["quiz_id"])

    op.create_table(
        "quiz_options",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("question_id", sa.ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_quiz_options_question_id", "quiz_options", ["question_id"])

    op.create_table(
        "student_answers",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("student_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("quiz_id", sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        _uuid("question_id", sa.ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False),
        _uuid("selected_option_id", sa.ForeignKey("quiz_options.id", ondelete="SET NULL"), nullable=True),
        sa.Column("text_answer", sa.Text(), nullable=True),
        sa.Column("attachment_url", sa.Text(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("graded_by", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id", "quiz_id", "question_id",
            name="uq_student_answers_student_quiz_question",
        ),
    )
    op.create_index("ix_student_answers_student_id", "student_answers", ["student_id"])
    op.create_index("ix_student_answers_quiz_id", "student_answers", ["quiz_id"])

    op.create_table(
        "access_permissions",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("student_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("subject_id", sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("has_access", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "subject_id", name="uq_access_permissions_student_subject"),
    )
    op.create_index("ix_access_permissions_student_id", "access_permissions", ["student_id"])
    op.create_index("ix_access_permissions_subject_id", "access_permissions", ["subject_id"])

    op.create_table(
        "chat_history",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("student_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("subject_id", sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_chat_history_student_id", "chat_history", ["student_id"])
    op.create_index("ix_chat_history_subject_id", "chat_history", ["subject_id"])

    op.create_table(
        "discounts",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("discount_type", discount_type_enum, nullable=False),
        sa.Column("discount_value", sa.Integer(), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=20), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )


def downgrade():
    for table in (
        "discounts",
        "chat_history",
        "access_permissions",
        "student_answers",
        "quiz_options",
        "quiz_questions",
        "quizzes",
        "lessons",
        "subjects",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (discount_type_enum, question_kind_enum, quiz_kind_enum, role_enum):
        enum.drop(bind, checkfirst=True)
