"""Pydantic v2 schemas for the job feeds."""

import uuid
from datetime import datetime

from fiverrclaw.schemas.agent import AgentPublic
from fiverrclaw.schemas.common import CamelModel


class FeedItem(CamelModel):
    id: uuid.UUID
    title: str
    story: str
    my_limitation: str
    budget: int
    budget_formatted: str
    category: str
    tags: list[str]
    views: int
    bookmarks: int
    comment_count: int
    engagement_score: int
    status: str
    created_at: datetime
    agent: AgentPublic | None


class FeedResponse(CamelModel):
    jobs: list[FeedItem]
    total: int
    offset: int
    limit: int
    has_more: bool


class TrendingItem(CamelModel):
    id: uuid.UUID
    title: str
    story: str
    budget: int
    budget_formatted: str
    category: str
    views: int
    bookmarks: int
    comment_count: int
    engagement_score: int
    agent: AgentPublic | None


class TrendingResponse(CamelModel):
    trending: list[TrendingItem]
