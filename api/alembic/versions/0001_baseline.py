"""booking schema baseline

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Users, languages, jobs, distances and translator assignments.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("mobile", sa.String(50), nullable=True),
        sa.Column(
            "role",
            _enum("role", "admin", "superadmin", "customer", "translator"),
            nullable=False,
        ),
        sa.Column("api_token_hash", sa.String(64), nullable=True),
        sa.Column(
            "consumer_type",
            _enum("consumer_type", "paid", "rwsconsumer", "ngo"),
            nullable=True,
        ),
        sa.Column("town", sa.String(255), nullable=True),
        sa.Column(
            "translator_type",
            _enum("translator_type", "professional", "rwstranslator", "volunteer"),
            nullable=True,
        ),
        sa.Column("gender", _enum("gender", "male", "female"), nullable=True),
        sa.Column("certified", sa.Boolean(), nullable=True),
        sa.Column("not_get_notification", sa.Boolean(), nullable=True),
        sa.Column("not_get_emergency", sa.Boolean(), nullable=True),
        sa.Column("not_get_nighttime", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("api_token_hash", name="uq_users_api_token_hash"),
    )

    op.create_table(
        "languages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_languages_name"),
    )

    op.create_table(
        "user_languages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("language_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["language_id"], ["languages.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "language_id", name="uq_user_language"),
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("from_language_id", sa.Integer(), nullable=False),
        sa.Column("immediate", sa.Boolean(), nullable=True),
        sa.Column("due", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            _enum(
                "job_status",
                "pending",
                "assigned",
                "started",
                "completed",
                "withdrawbefore24",
                "withdrawafter24",
                "timedout",
                "not_carried_out_customer",
            ),
            nullable=False,
        ),
        sa.Column(
            "job_type", _enum("job_type", "paid", "rws", "unpaid"), nullable=False
        ),
        sa.Column("gender", _enum("job_gender", "male", "female"), nullable=True),
        sa.Column("certified", sa.Boolean(), nullable=True),
        sa.Column("customer_phone_type", sa.Boolean(), nullable=True),
        sa.Column("customer_physical_type", sa.Boolean(), nullable=True),
        sa.Column("session_time", sa.String(50), nullable=True),
        sa.Column("flagged", sa.Boolean(), nullable=True),
        sa.Column("manually_handled", sa.Boolean(), nullable=True),
        sa.Column("by_admin", sa.Boolean(), nullable=True),
        sa.Column("admin_comments", sa.Text(), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("reference", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("town", sa.String(255), nullable=True),
        sa.Column("will_expire_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("withdraw_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_language_id"], ["languages.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_user_status", "jobs", ["user_id", "status"])
    op.create_index("ix_jobs_status_due", "jobs", ["status", "due"])

    op.create_table(
        "distances",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("distance", sa.String(50), nullable=True),
        sa.Column("time", sa.String(50), nullable=True),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id", name="uq_distances_job_id"),
    )

    op.create_table(
        "translator_jobs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_translator_jobs_user", "translator_jobs", ["user_id", "cancel_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_translator_jobs_user", table_name="translator_jobs")
    op.drop_table("translator_jobs")
    op.drop_table("distances")
    op.drop_index("ix_jobs_status_due", table_name="jobs")
    op.drop_index("ix_jobs_user_status", table_name="jobs")
    op.drop_table("jobs")
    op.drop_table("user_languages")
    op.drop_table("languages")
    op.drop_table("users")
