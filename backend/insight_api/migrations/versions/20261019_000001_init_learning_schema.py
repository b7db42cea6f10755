"""init learning schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    json_type = sa.JSON().with_variant(postgresql.JSONB, "postgresql")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("photo", sa.String(length=255), nullable=True),
        sa.Column("resetOtp", sa.String(length=6), nullable=True),
        sa.Column("resetOtpExpires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("isVerified", sa.Boolean(), server_default=sa.text("false")),
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cid", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("noOfChapters", sa.Integer(), nullable=False),
        sa.Column("includeVideo", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("level", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("courseJson", json_type, nullable=True),
        sa.Column("userEmail", sa.String(), sa.ForeignKey("users.email"), nullable=False),
        sa.Column("bannerImageURL", sa.Text(), server_default=sa.text("''")),
        sa.Column("courseContent", json_type, nullable=True),
    )
    op.create_index("idx_courses_user_email", "courses", ["userEmail"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("courseId", sa.String(length=255), sa.ForeignKey("courses.cid"), nullable=False),
        sa.Column("userEmail", sa.String(), sa.ForeignKey("users.email"), nullable=False),
        sa.Column("completedChapters", json_type, nullable=True),
        sa.UniqueConstraint("userEmail", "courseId", name="uq_enrollments_user_course"),
    )

    op.create_table(
        "quiz_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("userEmail", sa.String(), sa.ForeignKey("users.email"), nullable=False),
        sa.Column("topic", sa.String(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("totalQuestions", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(), nullable=False),
    )
    op.create_index("idx_quiz_history_user_email", "quiz_history", ["userEmail"])

    op.create_table(
        "user_pdfs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_email", sa.String(length=255), sa.ForeignKey("users.email"), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("pdf_text", sa.Text(), nullable=False),
        sa.Column("uploaded_at", sa.String(length=50), nullable=False),
    )

    op.create_table(
        "resources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("topic", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("authorName", sa.String(), nullable=False),
        sa.Column("authorEmail", sa.String(), nullable=False),
        sa.Column("fileUrl", sa.String(), nullable=False),
        sa.Column("fileName", sa.String(), nullable=False),
        sa.Column("date", sa.String(), nullable=False),
        sa.Column("views", sa.Integer(), server_default=sa.text("0")),
    )


def downgrade() -> None:
    op.drop_table("resources")
    op.drop_table("user_pdfs")
    op.drop_index("idx_quiz_history_user_email", table_name="quiz_history")
    op.drop_table("quiz_history")
    op.drop_table("enrollments")
    op.drop_index("idx_courses_user_email", table_name="courses")
    op.drop_table("courses")
    op.drop_table("users")
