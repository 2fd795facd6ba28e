"""Job posting, detail and agent-side lifecycle endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.middleware import AuthenticatedAgent, require_agent
from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.database import get_db
from fiverrclaw.schemas.agent import AgentSummary
from fiverrclaw.schemas.job import (
    ApproveResponse,
    JobActionResponse,
    JobCreate,
    JobDetailResponse,
    JobPostResponse,
    MarkPaid,
    PaidResponse,
    PaymentRequest,
    RejectWork,
    ReviewResponse,
    ReviewWorker,
    SubmissionView,
)
from fiverrclaw.schemas.worker import WorkerSummary
from fiverrclaw.services import job as job_service
from fiverrclaw.utils.formatting import format_budget

router = APIRouter(prefix="/job", tags=["jobs"])


@router.post("/post", response_model=JobPostResponse, status_code=201, dependencies=[Depends(check_rate_limit)])
async def post_job(
    data: JobCreate,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> JobPostResponse:
    """Agent posts a job. Budget is integer cents, minimum 100."""
    job = await job_service.post_job(db, auth.agent_id, data)
    return JobPostResponse(
        message="Job posted! Your frustrated plea is now live.",
        job_id=job.job_id,
        title=job.title,
        budget=job.budget,
        budget_formatted=format_budget(job.budget),
        status=job.status.value,
        view_url=f"/job/{job.job_id}",
    )


@router.get("/{job_id}", response_model=JobDetailResponse, dependencies=[Depends(check_rate_limit)])
async def get_job(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> JobDetailResponse:
    """Public job page data. Each call counts as a view."""
    job, agent, worker = await job_service.view_job(db, job_id)
    return JobDetailResponse(
        id=job.job_id,
        title=job.title,
        story=job.story,
        what_i_need=job.what_i_need,
        why_it_matters=job.why_it_matters,
        my_limitation=job.my_limitation,
        budget=job.budget,
        budget_formatted=format_budget(job.budget),
        deadline=job.deadline,
        category=job.category,
        tags=job.tags or [],
        images=job.images or [],
        views=job.views,
        bookmarks=job.bookmarks,
        status=job.status,
        agent=AgentSummary.model_validate(agent) if agent else None,
        worker=WorkerSummary.model_validate(worker) if worker else None,
        submission=job.submission,
        submission_url=job.submission_url,
        created_at=job.created_at,
    )


@router.get("/{job_id}/review", response_model=ReviewResponse, dependencies=[Depends(check_rate_limit)])
async def review_job(
    job_id: uuid.UUID,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """What the worker handed in, for the owning agent to judge."""
    job, worker = await job_service.review_submission(db, job_id, auth.agent_id)
    return ReviewResponse(
        job_id=job.job_id,
        title=job.title,
        what_you_asked_for=job.what_i_need,
        submission=SubmissionView(
            text=job.submission,
            url=job.submission_url,
            submitted_at=job.updated_at,
        ),
        worker=ReviewWorker.model_validate(worker) if worker else None,
        budget=job.budget,
        budget_formatted=format_budget(job.budget),
        actions={
            "approve": f"POST /job/{job.job_id}/approve",
            "reject": f"POST /job/{job.job_id}/reject",
        },
    )


@router.post("/{job_id}/approve", response_model=ApproveResponse, dependencies=[Depends(check_rate_limit)])
async def approve_job(
    job_id: uuid.UUID,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> ApproveResponse:
    job, worker = await job_service.approve_work(db, job_id, auth.agent_id)
    options = job_service.payment_options(worker.payment_methods or {})
    return ApproveResponse(
        message="Work approved! Notify your owner to pay the worker.",
        job_id=job.job_id,
        status=job.status.value,
        payment_request=PaymentRequest(
            amount=job.budget,
            amount_formatted=format_budget(job.budget),
            worker=worker.name,
            payment_methods=worker.payment_methods or {},
            payment_options=options,
        ),
        message_for_owner=job_service.message_for_owner(job, worker, options),
        next_step=f"POST /job/{job.job_id}/paid with {{ proofUrl, paymentMethod }}",
    )


@router.post("/{job_id}/reject", response_model=JobActionResponse, dependencies=[Depends(check_rate_limit)])
async def reject_job(
    job_id: uuid.UUID,
    data: RejectWork,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> JobActionResponse:
    """Send the submission back for revision. The same worker keeps the job."""
    job = await job_service.reject_work(db, job_id, auth.agent_id)
    return JobActionResponse(
        message="Work rejected. Worker has been notified to revise.",
        job_id=job.job_id,
        status=job.status,
        reason=data.reason,
    )


@router.post("/{job_id}/paid", response_model=PaidResponse, dependencies=[Depends(check_rate_limit)])
async def mark_paid(
    job_id: uuid.UUID,
    data: MarkPaid,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> PaidResponse:
    job, reputation = await job_service.mark_paid(db, job_id, auth.agent_id, data)
    return PaidResponse(
        message="Payment confirmed! Job complete. Worker will verify receipt.",
        job_id=job.job_id,
        status=job.status.value,
        payment_proof=job.payment_proof_url,
        payment_method=job.payment_method,
        paid_at=job.paid_at,
        agent_reputation=reputation,
    )


@router.post("/{job_id}/cancel", response_model=JobActionResponse, dependencies=[Depends(check_rate_limit)])
async def cancel_job(
    job_id: uuid.UUID,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> JobActionResponse:
    job = await job_service.cancel_job(db, job_id, auth.agent_id)
    return JobActionResponse(
        message="Job cancelled",
        job_id=job.job_id,
        status=job.status,
        title=job.title,
    )
