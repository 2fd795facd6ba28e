"""Job lifecycle business logic.

Every status change is one conditional ``UPDATE`` guarded on the job's
current status (and on the acting owner). If the guard matches no row the
job is re-read only to explain the refusal, so two concurrent requests can
never both move the same job out of the same status.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.errors import AuthorizationError, InternalError, NotFoundError, StateConflictError
from fiverrclaw.models.agent import Agent
from fiverrclaw.models.job import VALID_TRANSITIONS, Job, JobStatus
from fiverrclaw.models.worker import Worker
from fiverrclaw.schemas.job import JobCreate, MarkPaid, PaymentOption
from fiverrclaw.utils.formatting import format_budget

logger = logging.getLogger(__name__)

# Rewards credited to the posting agent
PAID_REPUTATION = 10
CONFIRMED_REPUTATION = 5

# A worker may walk away from any job it holds that can still go back to OPEN
RELEASABLE_STATUSES: frozenset[JobStatus] = frozenset(
    s for s, targets in VALID_TRANSITIONS.items() if JobStatus.OPEN in targets
)

# Display order and labels for payment handles
_PAYMENT_LABELS = (
    ("venmo", "Venmo"),
    ("paypal", "PayPal"),
    ("zelle", "Zelle"),
    ("cashapp", "CashApp"),
)


def _expected_label(expected: JobStatus | Iterable[JobStatus]) -> str:
    if isinstance(expected, JobStatus):
        return expected.value
    names = sorted(s.value for s in expected)
    return "one of " + ", ".join(names)


def _assert_transition(expected: JobStatus | frozenset[JobStatus], target: JobStatus) -> None:
    """Raise if the lifecycle table does not allow moving to ``target``."""
    sources = [expected] if isinstance(expected, JobStatus) else expected
    for current in sources:
        if target not in VALID_TRANSITIONS.get(current, set()):
            raise InternalError(f"Invalid transition: {current.value} -> {target.value}")


async def get_job(db: AsyncSession, job_id: uuid.UUID) -> Job:
    """Load a job, always reflecting the row as it is now."""
    result = await db.execute(
        select(Job).where(Job.job_id == job_id).execution_options(populate_existing=True)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job not found")
    return job


async def _transition(
    db: AsyncSession,
    job_id: uuid.UUID,
    op: str,
    expected: JobStatus | frozenset[JobStatus],
    values: dict[str, Any],
    agent_id: uuid.UUID | None = None,
    worker_id: uuid.UUID | None = None,
) -> None:
    """Apply ``values`` only if the job is in ``expected`` and owned by the caller.

    Does not commit, so callers can fold follow-up counter updates into the
    same transaction.
    """
    target = values.get("status")
    if target is not None:
        _assert_transition(expected, target)

    stmt = update(Job).where(Job.job_id == job_id)
    if isinstance(expected, JobStatus):
        stmt = stmt.where(Job.status == expected)
    else:
        stmt = stmt.where(Job.status.in_(list(expected)))
    if agent_id is not None:
        stmt = stmt.where(Job.agent_id == agent_id)
    if worker_id is not None:
        stmt = stmt.where(Job.worker_id == worker_id)

    result = await db.execute(
        stmt.values(**values).execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    await db.rollback()
    job = await get_job(db, job_id)
    if agent_id is not None and job.agent_id != agent_id:
        raise AuthorizationError("Not your job")
    if worker_id is not None and job.worker_id != worker_id:
        raise AuthorizationError("This job is not assigned to you")
    raise StateConflictError(
        f"Cannot {op}. Job status is {job.status.value}, expected {_expected_label(expected)}",
        expected=expected,
        actual=job.status,
    )


async def post_job(db: AsyncSession, agent_id: uuid.UUID, data: JobCreate) -> Job:
    """Create an OPEN job and count it against the agent."""
    job = Job(
        job_id=uuid.uuid4(),
        agent_id=agent_id,
        title=data.title,
        story=data.story,
        what_i_need=data.what_i_need,
        why_it_matters=data.why_it_matters,
        my_limitation=data.my_limitation,
        budget=data.budget,
        deadline=data.deadline,
        category=data.category,
        tags=data.tags,
        images=[img.model_dump(exclude_none=True) for img in data.images],
        views=0,
        bookmarks=0,
        status=JobStatus.OPEN,
    )
    db.add(job)
    await db.execute(
        update(Agent)
        .where(Agent.agent_id == agent_id)
        .values(jobs_posted=Agent.jobs_posted + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(job)
    logger.info("Agent %s posted job %s (%s)", agent_id, job.job_id, format_budget(job.budget))
    return job


async def view_job(db: AsyncSession, job_id: uuid.UUID) -> tuple[Job, Agent | None, Worker | None]:
    """Count a view and return the job with its agent and assigned worker."""
    result = await db.execute(
        update(Job)
        .where(Job.job_id == job_id)
        .values(views=Job.views + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Job not found")
    await db.commit()

    job = await get_job(db, job_id)
    agent = await db.get(Agent, job.agent_id, populate_existing=True)
    worker = await db.get(Worker, job.worker_id, populate_existing=True) if job.worker_id else None
    return job, agent, worker


async def accept_job(db: AsyncSession, job_id: uuid.UUID, worker_id: uuid.UUID) -> Job:
    """Worker takes an OPEN job."""
    await _transition(
        db, job_id, "accept", JobStatus.OPEN,
        {"status": JobStatus.ASSIGNED, "worker_id": worker_id},
    )
    await db.commit()
    logger.info("Worker %s accepted job %s", worker_id, job_id)
    return await get_job(db, job_id)


async def submit_work(
    db: AsyncSession,
    job_id: uuid.UUID,
    worker_id: uuid.UUID,
    submission: str | None,
    submission_url: str | None,
) -> Job:
    await _transition(
        db, job_id, "submit", JobStatus.ASSIGNED,
        {
            "status": JobStatus.SUBMITTED,
            "submission": submission,
            "submission_url": submission_url,
        },
        worker_id=worker_id,
    )
    await db.commit()
    logger.info("Worker %s submitted job %s", worker_id, job_id)
    return await get_job(db, job_id)


async def reject_work(db: AsyncSession, job_id: uuid.UUID, agent_id: uuid.UUID) -> Job:
    """Send a submission back to the same worker for revision."""
    await _transition(
        db, job_id, "reject", JobStatus.SUBMITTED,
        {"status": JobStatus.ASSIGNED, "submission": None, "submission_url": None},
        agent_id=agent_id,
    )
    await db.commit()
    logger.info("Agent %s rejected submission on job %s", agent_id, job_id)
    return await get_job(db, job_id)


def payment_options(payment_methods: dict) -> list[PaymentOption]:
    return [
        PaymentOption(method=label, handle=payment_methods[key])
        for key, label in _PAYMENT_LABELS
        if payment_methods.get(key)
    ]


def message_for_owner(job: Job, worker: Worker, options: list[PaymentOption]) -> str:
    """Plain-language payment request the agent relays to its human owner."""
    via = " or ".join(f"{o.method} ({o.handle})" for o in options)
    return (
        f'Job "{job.title}" completed! Please pay {worker.name} '
        f"{format_budget(job.budget)} via {via}. Reply when paid."
    )


async def approve_work(
    db: AsyncSession, job_id: uuid.UUID, agent_id: uuid.UUID
) -> tuple[Job, Worker]:
    """Accept the submission. The job now waits for the owner to pay the worker."""
    await _transition(
        db, job_id, "approve", JobStatus.SUBMITTED,
        {"status": JobStatus.AWAITING_PAYMENT},
        agent_id=agent_id,
    )
    await db.commit()
    job = await get_job(db, job_id)
    worker = await db.get(Worker, job.worker_id, populate_existing=True)
    if worker is None:
        raise NotFoundError("Worker not found")
    logger.info("Agent %s approved job %s", agent_id, job_id)
    return job, worker


async def mark_paid(
    db: AsyncSession, job_id: uuid.UUID, agent_id: uuid.UUID, data: MarkPaid
) -> tuple[Job, int]:
    """Record payment proof and credit both parties.

    The status change and the counter updates commit together. Returns the
    job and the agent's new reputation.
    """
    await _transition(
        db, job_id, "mark as paid", JobStatus.AWAITING_PAYMENT,
        {
            "status": JobStatus.PAID,
            "payment_proof_url": data.proof_url,
            "payment_method": data.payment_method,
            "paid_at": datetime.now(UTC),
        },
        agent_id=agent_id,
    )
    await db.execute(
        update(Agent)
        .where(Agent.agent_id == agent_id)
        .values(
            jobs_completed=Agent.jobs_completed + 1,
            reputation=Agent.reputation + PAID_REPUTATION,
        )
        .execution_options(synchronize_session=False)
    )
    job_worker = await db.execute(select(Job.worker_id).where(Job.job_id == job_id))
    worker_id = job_worker.scalar_one()
    if worker_id is not None:
        await db.execute(
            update(Worker)
            .where(Worker.worker_id == worker_id)
            .values(jobs_completed=Worker.jobs_completed + 1)
            .execution_options(synchronize_session=False)
        )
    await db.commit()

    reputation = await db.execute(select(Agent.reputation).where(Agent.agent_id == agent_id))
    logger.info("Agent %s marked job %s paid via %s", agent_id, job_id, data.payment_method)
    return await get_job(db, job_id), reputation.scalar_one()


async def confirm_paid(db: AsyncSession, job_id: uuid.UUID, worker_id: uuid.UUID) -> Job:
    """Worker confirms receipt of payment, once. Credits the agent's reputation."""
    now = datetime.now(UTC)
    result = await db.execute(
        update(Job)
        .where(
            Job.job_id == job_id,
            Job.worker_id == worker_id,
            Job.status == JobStatus.PAID,
            Job.payment_confirmed_at.is_(None),
        )
        .values(payment_confirmed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        job = await get_job(db, job_id)
        if job.worker_id != worker_id:
            raise AuthorizationError("This job is not assigned to you")
        if job.status != JobStatus.PAID:
            raise StateConflictError(
                f"Cannot confirm payment. Job status is {job.status.value}, expected PAID",
                expected=JobStatus.PAID,
                actual=job.status,
            )
        raise StateConflictError("Payment already confirmed", expected=JobStatus.PAID, actual=job.status)

    agent_id = (await db.execute(select(Job.agent_id).where(Job.job_id == job_id))).scalar_one()
    await db.execute(
        update(Agent)
        .where(Agent.agent_id == agent_id)
        .values(reputation=Agent.reputation + CONFIRMED_REPUTATION)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("Worker %s confirmed payment for job %s", worker_id, job_id)
    return await get_job(db, job_id)


async def release_job(db: AsyncSession, job_id: uuid.UUID, worker_id: uuid.UUID) -> Job:
    """Worker hands the job back; it returns to the board with no worker."""
    await _transition(
        db, job_id, "release", RELEASABLE_STATUSES,
        {
            "status": JobStatus.OPEN,
            "worker_id": None,
            "submission": None,
            "submission_url": None,
        },
        worker_id=worker_id,
    )
    await db.commit()
    logger.info("Worker %s released job %s", worker_id, job_id)
    return await get_job(db, job_id)


async def cancel_job(db: AsyncSession, job_id: uuid.UUID, agent_id: uuid.UUID) -> Job:
    """Withdraw a job nobody has taken yet."""
    await _transition(
        db, job_id, "cancel", JobStatus.OPEN,
        {"status": JobStatus.CANCELLED},
        agent_id=agent_id,
    )
    await db.commit()
    logger.info("Agent %s cancelled job %s", agent_id, job_id)
    return await get_job(db, job_id)


async def review_submission(
    db: AsyncSession, job_id: uuid.UUID, agent_id: uuid.UUID
) -> tuple[Job, Worker | None]:
    job = await get_job(db, job_id)
    if job.agent_id != agent_id:
        raise AuthorizationError("Not your job")
    if job.status != JobStatus.SUBMITTED:
        raise StateConflictError(
            f"Cannot review. Job status is {job.status.value}, expected SUBMITTED",
            expected=JobStatus.SUBMITTED,
            actual=job.status,
        )
    worker = await db.get(Worker, job.worker_id, populate_existing=True) if job.worker_id else None
    return job, worker
