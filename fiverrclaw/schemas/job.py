"""Pydantic v2 schemas for Job lifecycle endpoints."""

import uuid
from datetime import datetime

from pydantic import Field, field_validator

from fiverrclaw.models.job import JobCategory
from fiverrclaw.schemas.agent import AgentSummary
from fiverrclaw.schemas.common import CamelModel, ImagePayload
from fiverrclaw.schemas.worker import WorkerSummary

MIN_BUDGET_CENTS = 100
MAX_BUDGET_CENTS = 100_000_000


def _serialize_enum(v: object) -> str:
    if hasattr(v, "value"):
        return v.value
    return str(v)


class JobCreate(CamelModel):
    """An agent's plea for help.

    The narrative fields are what persuades a human to take the job, and what
    the worker reads for context once they have it. ``budget`` is integer
    cents; the floor is one dollar.
    """

    title: str = Field(..., min_length=1, max_length=200)
    story: str = Field(..., min_length=1, max_length=10000)
    what_i_need: str = Field(..., min_length=1, max_length=5000)
    why_it_matters: str = Field(..., min_length=1, max_length=5000)
    my_limitation: str = Field(..., min_length=1, max_length=5000)
    budget: int = Field(...)
    deadline: datetime | None = None
    category: JobCategory = JobCategory.OTHER
    tags: list[str] = Field(default_factory=list, max_length=20)
    images: list[ImagePayload] = Field(default_factory=list, max_length=5)

    @field_validator("budget")
    @classmethod
    def validate_budget(cls, v: int) -> int:
        if v < MIN_BUDGET_CENTS:
            raise ValueError("Minimum budget is $1.00 (100 cents)")
        if v > MAX_BUDGET_CENTS:
            raise ValueError("Maximum budget is $1,000,000.00")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        for tag in v:
            if len(tag) > 64:
                raise ValueError("Tag must be <= 64 chars")
        return v


class JobPostResponse(CamelModel):
    message: str
    job_id: uuid.UUID
    title: str
    budget: int
    budget_formatted: str
    status: str
    view_url: str


class JobDetailResponse(CamelModel):
    id: uuid.UUID
    title: str
    story: str
    what_i_need: str
    why_it_matters: str
    my_limitation: str
    budget: int
    budget_formatted: str
    deadline: datetime | None
    category: str
    tags: list[str]
    images: list[dict]
    views: int
    bookmarks: int
    status: str
    agent: AgentSummary | None
    worker: WorkerSummary | None
    submission: str | None
    submission_url: str | None
    created_at: datetime

    @field_validator("status", "category", mode="before")
    @classmethod
    def serialize_enums(cls, v: object) -> str:
        return _serialize_enum(v)


class JobActionResponse(CamelModel):
    """Result of a lifecycle transition."""

    message: str
    job_id: uuid.UUID
    status: str
    title: str | None = None
    reason: str | None = None
    submission: str | None = None
    submission_url: str | None = None
    budget: int | None = None
    budget_formatted: str | None = None
    what_i_need: str | None = None
    deadline: datetime | None = None
    next_step: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        return _serialize_enum(v)


class RejectWork(CamelModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class MarkPaid(CamelModel):
    proof_url: str = Field(..., min_length=1, max_length=2048)
    payment_method: str = Field(..., min_length=1, max_length=32)

    @field_validator("payment_method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        return v.strip().lower()


class PaymentOption(CamelModel):
    method: str
    handle: str


class PaymentRequest(CamelModel):
    amount: int
    amount_formatted: str
    worker: str
    payment_methods: dict
    payment_options: list[PaymentOption]


class ApproveResponse(CamelModel):
    message: str
    job_id: uuid.UUID
    status: str
    payment_request: PaymentRequest
    message_for_owner: str
    next_step: str


class PaidResponse(CamelModel):
    message: str
    job_id: uuid.UUID
    status: str
    payment_proof: str
    payment_method: str
    paid_at: datetime
    agent_reputation: int


class ConfirmPaidResponse(CamelModel):
    message: str
    job_id: uuid.UUID
    title: str
    amount: int
    amount_formatted: str


class SubmissionView(CamelModel):
    text: str | None
    url: str | None
    submitted_at: datetime


class ReviewWorker(CamelModel):
    id: uuid.UUID = Field(validation_alias="worker_id")
    name: str
    jobs_completed: int
    payment_methods: dict


class ReviewResponse(CamelModel):
    """What the owning agent sees when a submission is waiting on it."""

    job_id: uuid.UUID
    title: str
    what_you_asked_for: str
    submission: SubmissionView
    worker: ReviewWorker | None
    budget: int
    budget_formatted: str
    actions: dict[str, str]
