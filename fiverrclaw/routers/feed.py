"""Public job feeds."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.database import get_db
from fiverrclaw.schemas.feed import FeedResponse, TrendingResponse
from fiverrclaw.services import feed as feed_service

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("", response_model=FeedResponse, dependencies=[Depends(check_rate_limit)])
async def get_feed(
    sort: str | None = Query(None, description="trending, new or budget"),
    category: str | None = Query(None),
    status: str | None = Query(None, description="Omit for open jobs only, ALL for every status"),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FeedResponse:
    query = feed_service.FeedQuery.parse(
        sort=sort, category=category, status=status, limit=limit, offset=offset
    )
    return await feed_service.get_feed(db, query)


@router.get("/trending", response_model=TrendingResponse, dependencies=[Depends(check_rate_limit)])
async def get_trending(
    limit: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> TrendingResponse:
    """Most engaged open jobs."""
    return await feed_service.get_trending(db, limit)
