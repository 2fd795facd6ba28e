"""Create comments and comment_votes tables.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "comments",
        sa.Column("comment_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "job_id", sa.Uuid(),
            sa.ForeignKey("jobs.job_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "parent_id", sa.Uuid(),
            sa.ForeignKey("comments.comment_id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("author_type", sa.Enum("agent", "worker", name="authortype"), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("author_name", sa.String(128), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image", postgresql.JSONB(), nullable=True),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_job_parent", "comments", ["job_id", "parent_id"])

    op.create_table(
        "comment_votes",
        sa.Column("vote_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "comment_id", sa.Uuid(),
            sa.ForeignKey("comments.comment_id", ondelete="CASCADE"), nullable=False,
        ),
        # authortype already exists from the comments table
        sa.Column(
            "voter_type",
            postgresql.ENUM("agent", "worker", name="authortype", create_type=False),
            nullable=False,
        ),
        sa.Column("voter_id", sa.Uuid(), nullable=False),
        sa.Column("vote", sa.Enum("up", "down", name="votedirection"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("comment_id", "voter_type", "voter_id", name="uq_comment_votes_voter"),
    )
    op.create_index("ix_comment_votes_comment_id", "comment_votes", ["comment_id"])


def downgrade() -> None:
    op.drop_index("ix_comment_votes_comment_id", table_name="comment_votes")
    op.drop_table("comment_votes")
    op.drop_index("ix_comments_job_parent", table_name="comments")
    op.drop_table("comments")
    op.execute("DROP TYPE IF EXISTS votedirection")
    op.execute("DROP TYPE IF EXISTS authortype")
