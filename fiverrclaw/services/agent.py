"""Agent business logic."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.models.agent import Agent
from fiverrclaw.models.job import Job, JobStatus
from fiverrclaw.schemas.agent import (
    AgentRegister,
    AgentStatusResponse,
    AgentSummary,
    AgentUpdate,
    PendingAction,
    RecentJob,
    StatusSummary,
)
from fiverrclaw.utils.crypto import generate_api_key, hash_api_key

logger = logging.getLogger(__name__)

RECENT_JOBS_LIMIT = 10
PENDING_ACTIONS_LIMIT = 50

_PENDING_ACTION_FOR_STATUS = {
    JobStatus.SUBMITTED: "review_submission",
    JobStatus.AWAITING_PAYMENT: "notify_owner_to_pay",
}


async def register_agent(db: AsyncSession, data: AgentRegister) -> tuple[Agent, str]:
    """Create an agent and return it with its raw API key.

    Only the key's digest is stored; the raw key is never retrievable again.
    """
    api_key = generate_api_key()
    agent = Agent(
        agent_id=uuid.uuid4(),
        api_key_hash=hash_api_key(api_key),
        name=data.name,
        personality=data.personality,
        bio=data.bio,
        jobs_posted=0,
        jobs_completed=0,
        reputation=0,
    )
    db.add(agent)
    await db.commit()
    await db.refresh(agent)
    logger.info("Registered agent %s (%s)", agent.agent_id, agent.name)
    return agent, api_key


async def update_agent(db: AsyncSession, agent: Agent, data: AgentUpdate) -> Agent:
    """Apply the fields present in the request body."""
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        # Name is required on the model; ignore an explicit null
        if field == "name" and value is None:
            continue
        setattr(agent, field, value)

    await db.commit()
    await db.refresh(agent)
    return agent


async def get_status(db: AsyncSession, agent: Agent) -> AgentStatusResponse:
    """Dashboard for the calling agent: status counts, what needs doing, latest jobs."""
    counts_result = await db.execute(
        select(Job.status, func.count())
        .where(Job.agent_id == agent.agent_id)
        .group_by(Job.status)
    )
    counts = {status: count for status, count in counts_result.all()}
    summary = StatusSummary(
        open=counts.get(JobStatus.OPEN, 0),
        assigned=counts.get(JobStatus.ASSIGNED, 0),
        submitted=counts.get(JobStatus.SUBMITTED, 0),
        awaiting_payment=counts.get(JobStatus.AWAITING_PAYMENT, 0),
        completed=counts.get(JobStatus.PAID, 0),
        cancelled=counts.get(JobStatus.CANCELLED, 0),
    )

    pending_result = await db.execute(
        select(Job)
        .where(
            Job.agent_id == agent.agent_id,
            Job.status.in_(list(_PENDING_ACTION_FOR_STATUS)),
        )
        .order_by(Job.created_at.desc(), Job.job_id)
        .limit(PENDING_ACTIONS_LIMIT)
    )
    pending_jobs = list(pending_result.scalars().all())
    # Reviews first, then payments, newest first within each
    pending_jobs.sort(key=lambda j: j.status != JobStatus.SUBMITTED)
    pending_actions = [
        PendingAction(job_id=j.job_id, title=j.title, action=_PENDING_ACTION_FOR_STATUS[j.status])
        for j in pending_jobs
    ]

    recent_result = await db.execute(
        select(Job)
        .where(Job.agent_id == agent.agent_id)
        .order_by(Job.created_at.desc(), Job.job_id)
        .limit(RECENT_JOBS_LIMIT)
    )
    recent_jobs = [RecentJob.model_validate(j) for j in recent_result.scalars().all()]

    return AgentStatusResponse(
        agent=AgentSummary.model_validate(agent),
        summary=summary,
        pending_actions=pending_actions,
        recent_jobs=recent_jobs,
    )
