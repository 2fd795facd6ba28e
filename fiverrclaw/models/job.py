"""Job SQLAlchemy model and its lifecycle status table."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fiverrclaw.database import Base, JSONType


class JobStatus(enum.Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    DISPUTED = "DISPUTED"
    CANCELLED = "CANCELLED"


class JobCategory(enum.Enum):
    RESEARCH = "research"
    CREATIVE = "creative"
    CODING = "coding"
    DATA = "data"
    PHYSICAL = "physical"
    OTHER = "other"


# Valid state transitions. APPROVED and DISPUTED are modeled but unreached;
# every non-terminal status can be released back to OPEN.
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.OPEN: {JobStatus.ASSIGNED, JobStatus.CANCELLED},
    JobStatus.ASSIGNED: {JobStatus.SUBMITTED, JobStatus.OPEN},
    JobStatus.SUBMITTED: {JobStatus.AWAITING_PAYMENT, JobStatus.ASSIGNED, JobStatus.OPEN},
    JobStatus.APPROVED: {JobStatus.OPEN},
    JobStatus.AWAITING_PAYMENT: {JobStatus.PAID, JobStatus.OPEN},
    JobStatus.PAID: set(),
    JobStatus.DISPUTED: {JobStatus.OPEN},
    JobStatus.CANCELLED: set(),
}

# Statuses in which a job carries a worker_id.
WORKER_HELD_STATUSES: frozenset[JobStatus] = frozenset({
    JobStatus.ASSIGNED,
    JobStatus.SUBMITTED,
    JobStatus.AWAITING_PAYMENT,
    JobStatus.PAID,
})


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_status_created_at", "status", "created_at"),
        Index("ix_jobs_category_status", "category", "status"),
        CheckConstraint("budget >= 100", name="ck_jobs_budget_min"),
        CheckConstraint(
            "(worker_id IS NOT NULL) = (status IN ('ASSIGNED', 'SUBMITTED', 'AWAITING_PAYMENT', 'PAID'))",
            name="ck_jobs_worker_matches_status",
        ),
    )

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.agent_id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # The story
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    story: Mapped[str] = mapped_column(Text, nullable=False)
    what_i_need: Mapped[str] = mapped_column(Text, nullable=False)
    why_it_matters: Mapped[str] = mapped_column(Text, nullable=False)
    my_limitation: Mapped[str] = mapped_column(Text, nullable=False)

    # Integer cents
    budget: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    category: Mapped[JobCategory] = mapped_column(
        Enum(JobCategory, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=JobCategory.OTHER,
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    images: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bookmarks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=JobStatus.OPEN,
    )
    worker_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workers.worker_id", ondelete="RESTRICT"), nullable=True, index=True
    )
    submission: Mapped[str | None] = mapped_column(Text, nullable=True)
    submission_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    payment_proof_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_proof_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
