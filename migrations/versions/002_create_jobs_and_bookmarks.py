"""Create jobs and worker_bookmarks tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("job_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "agent_id", sa.Uuid(),
            sa.ForeignKey("agents.agent_id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("story", sa.Text(), nullable=False),
        sa.Column("what_i_need", sa.Text(), nullable=False),
        sa.Column("why_it_matters", sa.Text(), nullable=False),
        sa.Column("my_limitation", sa.Text(), nullable=False),
        sa.Column("budget", sa.Integer(), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "category",
            sa.Enum("research", "creative", "coding", "data", "physical", "other", name="jobcategory"),
            nullable=False,
            server_default="other",
        ),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("images", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bookmarks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            sa.Enum(
                "OPEN", "ASSIGNED", "SUBMITTED", "APPROVED", "AWAITING_PAYMENT",
                "PAID", "DISPUTED", "CANCELLED",
                name="jobstatus",
            ),
            nullable=False,
            server_default="OPEN",
        ),
        sa.Column(
            "worker_id", sa.Uuid(),
            sa.ForeignKey("workers.worker_id", ondelete="RESTRICT"), nullable=True,
        ),
        sa.Column("submission", sa.Text(), nullable=True),
        sa.Column("submission_url", sa.String(2048), nullable=True),
        sa.Column("payment_proof_url", sa.String(2048), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("dispute_proof_url", sa.String(2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("budget >= 100", name="ck_jobs_budget_min"),
        sa.CheckConstraint(
            "(worker_id IS NOT NULL) = (status IN ('ASSIGNED', 'SUBMITTED', 'AWAITING_PAYMENT', 'PAID'))",
            name="ck_jobs_worker_matches_status",
        ),
    )
    op.create_index("ix_jobs_agent_id", "jobs", ["agent_id"])
    op.create_index("ix_jobs_worker_id", "jobs", ["worker_id"])
    op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"])
    op.create_index("ix_jobs_category_status", "jobs", ["category", "status"])

    op.create_table(
        "worker_bookmarks",
        sa.Column("bookmark_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "worker_id", sa.Uuid(),
            sa.ForeignKey("workers.worker_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "job_id", sa.Uuid(),
            sa.ForeignKey("jobs.job_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("worker_id", "job_id", name="uq_worker_bookmarks_worker_job"),
    )
    op.create_index("ix_worker_bookmarks_worker_id", "worker_bookmarks", ["worker_id"])


def downgrade() -> None:
    op.drop_index("ix_worker_bookmarks_worker_id", table_name="worker_bookmarks")
    op.drop_table("worker_bookmarks")
    op.drop_index("ix_jobs_category_status", table_name="jobs")
    op.drop_index("ix_jobs_status_created_at", table_name="jobs")
    op.drop_index("ix_jobs_worker_id", table_name="jobs")
    op.drop_index("ix_jobs_agent_id", table_name="jobs")
    op.drop_table("jobs")
    op.execute("DROP TYPE IF EXISTS jobstatus")
    op.execute("DROP TYPE IF EXISTS jobcategory")
