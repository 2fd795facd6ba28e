"""Comment threads on jobs and comment voting."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.middleware import AuthenticatedActor, require_actor
from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.database import get_db
from fiverrclaw.schemas.comment import (
    CommentCreate,
    CommentListResponse,
    CommentPostResponse,
    VoteRequest,
    VoteResponse,
)
from fiverrclaw.services import comment as comment_service

router = APIRouter(tags=["comments"])


@router.get("/job/{job_id}/comments", response_model=CommentListResponse, dependencies=[Depends(check_rate_limit)])
async def list_comments(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> CommentListResponse:
    """Top-level comments by score with their replies nested beneath."""
    comments, total = await comment_service.list_comments(db, job_id)
    return CommentListResponse(comments=comments, total=total)


@router.post(
    "/job/{job_id}/comments",
    response_model=CommentPostResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def post_comment(
    job_id: uuid.UUID,
    data: CommentCreate,
    actor: AuthenticatedActor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> CommentPostResponse:
    """Replies to a reply are stored under its top-level comment."""
    comment = await comment_service.post_comment(db, job_id, actor.key, actor.name, data)
    reparented = data.parent_id is not None and comment.parent_id != data.parent_id
    return CommentPostResponse(
        message="Reply posted under the top-level comment" if reparented else "Comment posted",
        comment=comment_service.to_response(comment),
    )


@router.post("/comment/{comment_id}/vote", response_model=VoteResponse, dependencies=[Depends(check_rate_limit)])
async def vote_comment(
    comment_id: uuid.UUID,
    data: VoteRequest,
    actor: AuthenticatedActor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
) -> VoteResponse:
    """One vote per caller per comment; voting again replaces the earlier vote."""
    comment = await comment_service.vote(db, comment_id, actor.key, data.vote)
    return VoteResponse(
        message="Vote removed" if data.vote == "remove" else f"Voted {data.vote}",
        upvotes=comment.upvotes,
        downvotes=comment.downvotes,
        score=comment.score,
    )
