"""Worker accounts, the worker's job list and bookmarks."""

import logging
import uuid

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.errors import AuthenticationError, NotFoundError, ValidationError
from fiverrclaw.models.job import Job
from fiverrclaw.models.worker import Worker, WorkerBookmark
from fiverrclaw.schemas.worker import WorkerLogin, WorkerRegister
from fiverrclaw.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)


async def register_worker(db: AsyncSession, data: WorkerRegister) -> Worker:
    existing = await db.execute(select(Worker).where(Worker.email == data.email))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError("Email already registered")

    payment_methods = data.payment_methods.model_dump(exclude_none=True) if data.payment_methods else {}
    worker = Worker(
        worker_id=uuid.uuid4(),
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name.strip(),
        bio=data.bio,
        skills=data.skills,
        payment_methods=payment_methods,
        jobs_completed=0,
        rating_count=0,
    )
    db.add(worker)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ValidationError("Email already registered")
    await db.refresh(worker)
    logger.info("Registered worker %s", worker.worker_id)
    return worker


async def authenticate_worker(db: AsyncSession, data: WorkerLogin) -> Worker:
    result = await db.execute(select(Worker).where(Worker.email == data.email))
    worker = result.scalar_one_or_none()
    # Same message for unknown email and wrong password
    if worker is None or not verify_password(data.password, worker.password_hash):
        raise AuthenticationError("Invalid email or password")
    return worker


async def list_worker_jobs(db: AsyncSession, worker_id: uuid.UUID) -> list[Job]:
    """Jobs currently or previously held by the worker, newest first."""
    result = await db.execute(
        select(Job)
        .where(Job.worker_id == worker_id)
        .order_by(Job.created_at.desc(), Job.job_id)
    )
    return list(result.scalars().all())


async def _is_bookmarked(db: AsyncSession, worker_id: uuid.UUID, job_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(WorkerBookmark.bookmark_id).where(
            WorkerBookmark.worker_id == worker_id,
            WorkerBookmark.job_id == job_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def set_bookmark(
    db: AsyncSession,
    worker_id: uuid.UUID,
    job_id: uuid.UUID,
    action: str | None = None,
) -> tuple[bool, int]:
    """Add, remove or toggle (``action=None``) a bookmark.

    Returns ``(bookmarked, job.bookmarks)``. The job counter only moves when
    a bookmark row is actually inserted or deleted, so repeated adds or
    removes are no-ops.
    """
    result = await db.execute(select(Job.job_id).where(Job.job_id == job_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Job not found")

    currently = await _is_bookmarked(db, worker_id, job_id)
    if action is None:
        action = "remove" if currently else "add"

    if action == "remove":
        deleted = await db.execute(
            delete(WorkerBookmark).where(
                WorkerBookmark.worker_id == worker_id,
                WorkerBookmark.job_id == job_id,
            )
        )
        if deleted.rowcount:
            await db.execute(
                update(Job)
                .where(Job.job_id == job_id, Job.bookmarks > 0)
                .values(bookmarks=Job.bookmarks - 1)
            )
        bookmarked = False
    else:
        if not currently:
            try:
                await db.execute(
                    insert(WorkerBookmark).values(
                        bookmark_id=uuid.uuid4(), worker_id=worker_id, job_id=job_id
                    )
                )
            except IntegrityError:
                # Concurrent add already created the row
                await db.rollback()
            else:
                await db.execute(
                    update(Job).where(Job.job_id == job_id).values(bookmarks=Job.bookmarks + 1)
                )
        bookmarked = True

    await db.commit()
    count = await db.execute(select(Job.bookmarks).where(Job.job_id == job_id))
    return bookmarked, count.scalar_one()
