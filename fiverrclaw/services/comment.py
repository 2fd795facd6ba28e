"""Comment threads on jobs and per-voter votes."""

import logging
import uuid

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.errors import NotFoundError, StateConflictError
from fiverrclaw.models.comment import Comment, CommentVote, VoteDirection, VoterKey
from fiverrclaw.models.job import Job
from fiverrclaw.schemas.comment import CommentCreate, CommentResponse

logger = logging.getLogger(__name__)


async def _require_job(db: AsyncSession, job_id: uuid.UUID) -> None:
    result = await db.execute(select(Job.job_id).where(Job.job_id == job_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Job not found")


def _sort_key(comment: Comment) -> tuple:
    # Highest score first, newest first among equals
    return (-comment.score, -comment.created_at.timestamp())


def to_response(comment: Comment, replies: list[CommentResponse] | None = None) -> CommentResponse:
    return CommentResponse(
        id=comment.comment_id,
        parent_id=comment.parent_id,
        author_type=comment.author_type,
        author_id=comment.author_id,
        author_name=comment.author_name,
        content=comment.content,
        image=comment.image,
        upvotes=comment.upvotes,
        downvotes=comment.downvotes,
        score=comment.score,
        created_at=comment.created_at,
        replies=replies or [],
    )


async def post_comment(
    db: AsyncSession,
    job_id: uuid.UUID,
    author: VoterKey,
    author_name: str,
    data: CommentCreate,
) -> Comment:
    """Add a comment or a reply.

    Threads are two levels deep: a reply to a reply is attached to the
    top-level comment it belongs to.
    """
    await _require_job(db, job_id)

    parent_id = None
    if data.parent_id is not None:
        result = await db.execute(select(Comment).where(Comment.comment_id == data.parent_id))
        parent = result.scalar_one_or_none()
        if parent is None or parent.job_id != job_id:
            raise NotFoundError("Parent comment not found")
        parent_id = parent.parent_id or parent.comment_id

    comment = Comment(
        comment_id=uuid.uuid4(),
        job_id=job_id,
        parent_id=parent_id,
        author_type=author.kind,
        author_id=author.id,
        author_name=author_name,
        content=data.content,
        image=data.image.model_dump(exclude_none=True) if data.image else None,
        upvotes=0,
        downvotes=0,
    )
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    logger.info("%s %s commented on job %s", author.kind.value, author.id, job_id)
    return comment


async def list_comments(db: AsyncSession, job_id: uuid.UUID) -> tuple[list[CommentResponse], int]:
    """Return the comment tree for a job and the total number of comments."""
    await _require_job(db, job_id)

    result = await db.execute(select(Comment).where(Comment.job_id == job_id))
    comments = list(result.scalars().all())

    replies_by_parent: dict[uuid.UUID, list[Comment]] = {}
    top_level = []
    for comment in comments:
        if comment.parent_id is None:
            top_level.append(comment)
        else:
            replies_by_parent.setdefault(comment.parent_id, []).append(comment)

    tree = [
        to_response(
            comment,
            [to_response(r) for r in sorted(replies_by_parent.get(comment.comment_id, []), key=_sort_key)],
        )
        for comment in sorted(top_level, key=_sort_key)
    ]
    return tree, len(comments)


async def _find_vote(db: AsyncSession, comment_id: uuid.UUID, voter: VoterKey) -> CommentVote | None:
    result = await db.execute(
        select(CommentVote).where(
            CommentVote.comment_id == comment_id,
            CommentVote.voter_type == voter.kind,
            CommentVote.voter_id == voter.id,
        )
    )
    return result.scalar_one_or_none()


async def _apply_vote(
    db: AsyncSession, comment_id: uuid.UUID, voter: VoterKey, direction: str
) -> None:
    existing = await _find_vote(db, comment_id, voter)
    if existing is not None:
        counter = "upvotes" if existing.vote == VoteDirection.UP else "downvotes"
        await db.execute(
            delete(CommentVote)
            .where(CommentVote.vote_id == existing.vote_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Comment)
            .where(Comment.comment_id == comment_id)
            .values({counter: getattr(Comment, counter) - 1})
            .execution_options(synchronize_session=False)
        )

    if direction != "remove":
        new_vote = VoteDirection(direction)
        counter = "upvotes" if new_vote == VoteDirection.UP else "downvotes"
        await db.execute(
            insert(CommentVote).values(
                vote_id=uuid.uuid4(),
                comment_id=comment_id,
                voter_type=voter.kind,
                voter_id=voter.id,
                vote=new_vote,
            )
        )
        await db.execute(
            update(Comment)
            .where(Comment.comment_id == comment_id)
            .values({counter: getattr(Comment, counter) + 1})
            .execution_options(synchronize_session=False)
        )
    await db.commit()


async def vote(
    db: AsyncSession,
    comment_id: uuid.UUID,
    voter: VoterKey,
    direction: str,
) -> Comment:
    """Cast, change or remove ``voter``'s vote. ``direction`` is up, down or remove.

    The voter's previous vote row is deleted and its counter decremented,
    then the new vote is inserted and counted, all in one transaction.
    If a concurrent vote by the same voter lands first, the unique
    constraint rejects ours; it is rolled back and replayed once against
    the row that won.
    """
    result = await db.execute(select(Comment.comment_id).where(Comment.comment_id == comment_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Comment not found")

    for attempt in range(2):
        try:
            await _apply_vote(db, comment_id, voter, direction)
            break
        except IntegrityError:
            await db.rollback()
            if attempt:
                raise StateConflictError("Vote changed concurrently, please retry")
            logger.info("Replaying vote by %s %s on comment %s", voter.kind.value, voter.id, comment_id)

    refreshed = await db.execute(
        select(Comment).where(Comment.comment_id == comment_id).execution_options(populate_existing=True)
    )
    return refreshed.scalar_one()
