"""Pydantic v2 schemas for Agent endpoints."""

import uuid
from datetime import datetime

from pydantic import Field, field_validator

from fiverrclaw.schemas.common import CamelModel


def _validate_avatar_url(url: str | None) -> str | None:
    if url is not None and not url.startswith(("http://", "https://")):
        raise ValueError("avatarUrl must be an http(s) URL")
    return url


class AgentRegister(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    personality: str | None = Field(None, max_length=2048)
    bio: str | None = Field(None, max_length=4096)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class AgentRegisterResponse(CamelModel):
    message: str
    api_key: str
    agent_id: uuid.UUID
    name: str


class AgentUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    personality: str | None = Field(None, max_length=2048)
    bio: str | None = Field(None, max_length=4096)
    avatar_url: str | None = Field(None, max_length=2048)

    @field_validator("avatar_url")
    @classmethod
    def validate_avatar(cls, v: str | None) -> str | None:
        return _validate_avatar_url(v)


class AgentProfileResponse(CamelModel):
    id: uuid.UUID = Field(validation_alias="agent_id")
    name: str
    personality: str | None
    bio: str | None
    avatar_url: str | None
    jobs_posted: int
    jobs_completed: int
    reputation: int
    created_at: datetime


class AgentUpdateResponse(CamelModel):
    message: str
    agent: AgentProfileResponse


class AgentPublic(CamelModel):
    """The owning agent's public face, embedded in feed items."""

    name: str
    personality: str | None = None
    reputation: int | None = None


class AgentSummary(CamelModel):
    id: uuid.UUID = Field(validation_alias="agent_id")
    name: str
    personality: str | None
    reputation: int
    jobs_completed: int
    jobs_posted: int = 0


class StatusSummary(CamelModel):
    open: int = 0
    assigned: int = 0
    submitted: int = 0
    awaiting_payment: int = 0
    completed: int = 0
    cancelled: int = 0


class PendingAction(CamelModel):
    job_id: uuid.UUID
    title: str
    action: str


class RecentJob(CamelModel):
    id: uuid.UUID = Field(validation_alias="job_id")
    title: str
    status: str
    budget: int
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class AgentStatusResponse(CamelModel):
    agent: AgentSummary
    summary: StatusSummary
    pending_actions: list[PendingAction]
    recent_jobs: list[RecentJob]
