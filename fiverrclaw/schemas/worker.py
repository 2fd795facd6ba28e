"""Pydantic v2 schemas for Worker endpoints."""

import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator, model_validator

from fiverrclaw.schemas.common import CamelModel

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SKILL_MAX_LEN = 64


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email format")
    return v


class PaymentMethods(CamelModel):
    venmo: str | None = Field(None, max_length=128)
    paypal: str | None = Field(None, max_length=128)
    zelle: str | None = Field(None, max_length=128)
    cashapp: str | None = Field(None, max_length=128)

    def has_any(self) -> bool:
        return any((self.venmo, self.paypal, self.zelle, self.cashapp))


class WorkerRegister(CamelModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=128)
    bio: str | None = Field(None, max_length=4096)
    skills: list[str] = Field(default_factory=list, max_length=20)
    payment_methods: PaymentMethods | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v: list[str]) -> list[str]:
        for skill in v:
            if len(skill) > _SKILL_MAX_LEN:
                raise ValueError(f"Skill tag must be <= {_SKILL_MAX_LEN} chars: {skill}")
        return v

    @model_validator(mode="after")
    def require_payment_method(self) -> "WorkerRegister":
        if self.payment_methods is None or not self.payment_methods.has_any():
            raise ValueError(
                "At least one payment method is required (venmo, paypal, zelle, or cashapp)"
            )
        return self


class WorkerLogin(CamelModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class WorkerAuthResponse(CamelModel):
    message: str
    worker_id: uuid.UUID
    name: str
    token: str


class WorkerProfileResponse(CamelModel):
    id: uuid.UUID = Field(validation_alias="worker_id")
    name: str
    email: str
    bio: str | None
    skills: list[str]
    jobs_completed: int
    rating: float
    rating_count: int
    payment_methods: dict
    created_at: datetime


class WorkerSummary(CamelModel):
    """Assigned worker as shown on a job page."""

    id: uuid.UUID = Field(validation_alias="worker_id")
    name: str
    jobs_completed: int
    rating: float


class WorkerJobItem(CamelModel):
    id: uuid.UUID
    title: str
    status: str
    budget: int
    budget_formatted: str
    what_i_need: str
    created_at: datetime


class WorkerJobsResponse(CamelModel):
    jobs: list[WorkerJobItem]


class JobRef(CamelModel):
    """Body of the worker actions that only name a job."""

    job_id: uuid.UUID


class SubmitWork(CamelModel):
    job_id: uuid.UUID
    submission: str | None = Field(None, max_length=20000)
    submission_url: str | None = Field(None, max_length=2048)

    @model_validator(mode="after")
    def require_payload(self) -> "SubmitWork":
        if not self.submission and not self.submission_url:
            raise ValueError("Either submission (text) or submissionUrl is required")
        return self


class BookmarkRequest(CamelModel):
    job_id: uuid.UUID
    # None toggles the current state
    action: Literal["add", "remove"] | None = None


class BookmarkResponse(CamelModel):
    message: str
    job_id: uuid.UUID
    bookmarked: bool
    bookmarks: int
