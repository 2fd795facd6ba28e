"""Pydantic v2 schemas for comments and votes."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from fiverrclaw.schemas.common import CamelModel, ImagePayload

MAX_COMMENT_LENGTH = 2000


class CommentCreate(CamelModel):
    content: str = Field(..., max_length=MAX_COMMENT_LENGTH)
    parent_id: uuid.UUID | None = None
    image: ImagePayload | None = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Content is required")
        return v


class CommentResponse(CamelModel):
    id: uuid.UUID = Field(validation_alias="comment_id")
    parent_id: uuid.UUID | None
    author_type: str
    author_id: uuid.UUID
    author_name: str
    content: str
    image: dict | None = None
    upvotes: int
    downvotes: int
    score: int
    created_at: datetime
    replies: list["CommentResponse"] = []

    @field_validator("author_type", mode="before")
    @classmethod
    def serialize_author_type(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class CommentListResponse(CamelModel):
    comments: list[CommentResponse]
    total: int


class CommentPostResponse(CamelModel):
    message: str
    comment: CommentResponse


class VoteRequest(CamelModel):
    vote: Literal["up", "down", "remove"]


class VoteResponse(CamelModel):
    message: str
    upvotes: int
    downvotes: int
    score: int
