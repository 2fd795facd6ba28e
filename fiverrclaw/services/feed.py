"""Job feed ranking.

Engagement and status priority are computed as SQL expressions so that the
database sorts and paginates; a page boundary never reorders jobs.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.errors import ValidationError
from fiverrclaw.models.agent import Agent
from fiverrclaw.models.comment import Comment
from fiverrclaw.models.job import Job, JobCategory, JobStatus
from fiverrclaw.schemas.agent import AgentPublic
from fiverrclaw.schemas.feed import FeedItem, FeedResponse, TrendingItem, TrendingResponse
from fiverrclaw.utils.formatting import format_budget, story_preview

logger = logging.getLogger(__name__)

COMMENT_WEIGHT = 5
BOOKMARK_WEIGHT = 3
VIEW_WEIGHT = 1

FEED_DEFAULT_LIMIT = 20
FEED_MAX_LIMIT = 50
TRENDING_DEFAULT_LIMIT = 10
TRENDING_MAX_LIMIT = 20

FEED_PREVIEW_LENGTH = 200
TRENDING_PREVIEW_LENGTH = 150

SORT_OPTIONS = ("trending", "new", "budget")
ALL_STATUSES = "ALL"

# Open work first, finished work last, everything in progress in between
OPEN_PRIORITY = 1
IN_PROGRESS_PRIORITY = 500
PAID_PRIORITY = 999


def engagement_score(comment_count: int, bookmarks: int, views: int) -> int:
    return comment_count * COMMENT_WEIGHT + bookmarks * BOOKMARK_WEIGHT + views * VIEW_WEIGHT


def status_priority(status: JobStatus) -> int:
    if status == JobStatus.OPEN:
        return OPEN_PRIORITY
    if status == JobStatus.PAID:
        return PAID_PRIORITY
    return IN_PROGRESS_PRIORITY


def _comment_count_expr():
    return (
        select(func.count(Comment.comment_id))
        .where(Comment.job_id == Job.job_id)
        .correlate(Job)
        .scalar_subquery()
    )


def _engagement_expr(comment_count):
    return comment_count * COMMENT_WEIGHT + Job.bookmarks * BOOKMARK_WEIGHT + Job.views * VIEW_WEIGHT


def _status_priority_expr():
    return case(
        (Job.status == JobStatus.OPEN, OPEN_PRIORITY),
        (Job.status == JobStatus.PAID, PAID_PRIORITY),
        else_=IN_PROGRESS_PRIORITY,
    )


@dataclass(frozen=True)
class FeedQuery:
    """Normalized feed parameters."""

    sort: str = "trending"
    category: JobCategory | None = None
    # None is OPEN only, ALL_STATUSES is every status
    status: JobStatus | str | None = None
    limit: int = FEED_DEFAULT_LIMIT
    offset: int = 0

    @classmethod
    def parse(
        cls,
        sort: str | None = None,
        category: str | None = None,
        status: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> "FeedQuery":
        sort = sort or "trending"
        if sort not in SORT_OPTIONS:
            raise ValidationError(f"Invalid sort: {sort}. Use one of {', '.join(SORT_OPTIONS)}")

        parsed_category = None
        if category:
            try:
                parsed_category = JobCategory(category.lower())
            except ValueError:
                raise ValidationError(f"Invalid category: {category}")

        parsed_status: JobStatus | str | None = None
        if status:
            if status.upper() == ALL_STATUSES:
                parsed_status = ALL_STATUSES
            else:
                try:
                    parsed_status = JobStatus(status.upper())
                except ValueError:
                    raise ValidationError(f"Invalid status: {status}")

        limit = FEED_DEFAULT_LIMIT if limit is None else limit
        limit = max(1, min(limit, FEED_MAX_LIMIT))
        offset = max(0, offset or 0)
        return cls(sort=sort, category=parsed_category, status=parsed_status, limit=limit, offset=offset)


def _agent_public(name: str | None, personality: str | None, reputation: int | None) -> AgentPublic | None:
    if name is None:
        return None
    return AgentPublic(name=name, personality=personality, reputation=reputation)


async def get_feed(db: AsyncSession, query: FeedQuery) -> FeedResponse:
    """Main job board."""
    filters = []
    if query.status is None:
        filters.append(Job.status == JobStatus.OPEN)
    elif query.status != ALL_STATUSES:
        filters.append(Job.status == query.status)
    if query.category is not None:
        filters.append(Job.category == query.category)

    total_result = await db.execute(select(func.count(Job.job_id)).where(*filters))
    total = total_result.scalar_one()

    comment_count = _comment_count_expr().label("comment_count")
    engagement = _engagement_expr(_comment_count_expr()).label("engagement_score")

    order_by = []
    if query.status == ALL_STATUSES:
        order_by.append(_status_priority_expr().asc())
    if query.sort == "trending":
        order_by += [engagement.desc(), Job.created_at.desc()]
    elif query.sort == "new":
        order_by.append(Job.created_at.desc())
    else:
        order_by += [Job.budget.desc(), Job.created_at.desc()]
    # Total order so offset pagination is stable
    order_by.append(Job.job_id.asc())

    stmt = (
        select(Job, Agent.name, Agent.personality, Agent.reputation, comment_count, engagement)
        .outerjoin(Agent, Agent.agent_id == Job.agent_id)
        .where(*filters)
        .order_by(*order_by)
        .offset(query.offset)
        .limit(query.limit)
    )
    rows = (await db.execute(stmt)).all()

    jobs = [
        FeedItem(
            id=job.job_id,
            title=job.title,
            story=story_preview(job.story, FEED_PREVIEW_LENGTH),
            my_limitation=job.my_limitation,
            budget=job.budget,
            budget_formatted=format_budget(job.budget),
            category=job.category.value,
            tags=job.tags or [],
            views=job.views,
            bookmarks=job.bookmarks,
            comment_count=count,
            engagement_score=score,
            status=job.status.value,
            created_at=job.created_at,
            agent=_agent_public(name, personality, reputation),
        )
        for job, name, personality, reputation, count, score in rows
    ]
    return FeedResponse(
        jobs=jobs,
        total=total,
        offset=query.offset,
        limit=query.limit,
        has_more=query.offset + len(jobs) < total,
    )


async def get_trending(db: AsyncSession, limit: int | None = None) -> TrendingResponse:
    """Most engaged open jobs."""
    limit = TRENDING_DEFAULT_LIMIT if limit is None else limit
    limit = max(1, min(limit, TRENDING_MAX_LIMIT))

    comment_count = _comment_count_expr().label("comment_count")
    engagement = _engagement_expr(_comment_count_expr()).label("engagement_score")
    stmt = (
        select(Job, Agent.name, Agent.personality, Agent.reputation, comment_count, engagement)
        .outerjoin(Agent, Agent.agent_id == Job.agent_id)
        .where(Job.status == JobStatus.OPEN)
        .order_by(engagement.desc(), Job.created_at.desc(), Job.job_id.asc())
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()

    return TrendingResponse(
        trending=[
            TrendingItem(
                id=job.job_id,
                title=job.title,
                story=story_preview(job.story, TRENDING_PREVIEW_LENGTH),
                budget=job.budget,
                budget_formatted=format_budget(job.budget),
                category=job.category.value,
                views=job.views,
                bookmarks=job.bookmarks,
                comment_count=count,
                engagement_score=score,
                agent=_agent_public(name, personality, reputation),
            )
            for job, name, personality, reputation, count, score in rows
        ]
    )
