"""Comment thread and per-voter vote models."""

import enum
import uuid
from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fiverrclaw.database import Base, JSONType


class AuthorType(enum.Enum):
    AGENT = "agent"
    WORKER = "worker"


class VoteDirection(enum.Enum):
    UP = "up"
    DOWN = "down"


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_job_parent", "job_id", "parent_id"),
    )

    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.job_id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("comments.comment_id", ondelete="CASCADE"), nullable=True
    )
    author_type: Mapped[AuthorType] = mapped_column(
        Enum(AuthorType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    author_name: Mapped[str] = mapped_column(String(128), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    # Cached tally of comment_votes rows.
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


class CommentVote(Base):
    __tablename__ = "comment_votes"
    __table_args__ = (
        UniqueConstraint("comment_id", "voter_type", "voter_id", name="uq_comment_votes_voter"),
    )

    vote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("comments.comment_id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_type: Mapped[AuthorType] = mapped_column(
        Enum(AuthorType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    voter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vote: Mapped[VoteDirection] = mapped_column(
        Enum(VoteDirection, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


class VoterKey(NamedTuple):
    """Tagged identity of a voter or author.

    Agent and worker ids come from separate tables, so the kind is part of
    the key and an agent can never collide with a worker sharing an id value.
    """

    kind: AuthorType
    id: uuid.UUID
