"""Worker account, job actions and bookmarks."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.middleware import AuthenticatedWorker, require_worker
from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.auth.tokens import clear_auth_cookie, create_worker_token, set_auth_cookie
from fiverrclaw.database import get_db
from fiverrclaw.schemas.common import MessageResponse
from fiverrclaw.schemas.job import ConfirmPaidResponse, JobActionResponse
from fiverrclaw.schemas.worker import (
    BookmarkRequest,
    BookmarkResponse,
    JobRef,
    SubmitWork,
    WorkerAuthResponse,
    WorkerJobItem,
    WorkerJobsResponse,
    WorkerLogin,
    WorkerProfileResponse,
    WorkerRegister,
)
from fiverrclaw.services import job as job_service
from fiverrclaw.services import worker as worker_service
from fiverrclaw.utils.formatting import format_budget

router = APIRouter(prefix="/worker", tags=["workers"])


@router.post(
    "/register",
    response_model=WorkerAuthResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def register_worker(
    data: WorkerRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> WorkerAuthResponse:
    """Create a worker account and start a session."""
    worker = await worker_service.register_worker(db, data)
    token = create_worker_token(worker.worker_id, worker.email)
    set_auth_cookie(response, token)
    return WorkerAuthResponse(
        message="Welcome to FiverrClaw! You can now help frustrated AI agents.",
        worker_id=worker.worker_id,
        name=worker.name,
        token=token,
    )


@router.post("/login", response_model=WorkerAuthResponse, dependencies=[Depends(check_rate_limit)])
async def login(
    data: WorkerLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> WorkerAuthResponse:
    worker = await worker_service.authenticate_worker(db, data)
    token = create_worker_token(worker.worker_id, worker.email)
    set_auth_cookie(response, token)
    return WorkerAuthResponse(
        message="Login successful",
        worker_id=worker.worker_id,
        name=worker.name,
        token=token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/profile", response_model=WorkerProfileResponse, dependencies=[Depends(check_rate_limit)])
async def get_profile(
    auth: AuthenticatedWorker = Depends(require_worker),
) -> WorkerProfileResponse:
    return WorkerProfileResponse.model_validate(auth.worker)


@router.get("/jobs", response_model=WorkerJobsResponse, dependencies=[Depends(check_rate_limit)])
async def list_jobs(
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> WorkerJobsResponse:
    """Jobs assigned to the calling worker, newest first."""
    jobs = await worker_service.list_worker_jobs(db, auth.worker_id)
    return WorkerJobsResponse(
        jobs=[
            WorkerJobItem(
                id=j.job_id,
                title=j.title,
                status=j.status.value,
                budget=j.budget,
                budget_formatted=format_budget(j.budget),
                what_i_need=j.what_i_need,
                created_at=j.created_at,
            )
            for j in jobs
        ]
    )


@router.post("/accept", response_model=JobActionResponse, dependencies=[Depends(check_rate_limit)])
async def accept_job(
    data: JobRef,
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> JobActionResponse:
    job = await job_service.accept_job(db, data.job_id, auth.worker_id)
    return JobActionResponse(
        message="Job accepted! The agent is counting on you.",
        job_id=job.job_id,
        status=job.status,
        title=job.title,
        what_i_need=job.what_i_need,
        budget=job.budget,
        budget_formatted=format_budget(job.budget),
        deadline=job.deadline,
        next_step="POST /worker/submit with { jobId, submission, submissionUrl }",
    )


@router.post("/submit", response_model=JobActionResponse, dependencies=[Depends(check_rate_limit)])
async def submit_work(
    data: SubmitWork,
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> JobActionResponse:
    job = await job_service.submit_work(
        db, data.job_id, auth.worker_id, data.submission, data.submission_url
    )
    return JobActionResponse(
        message="Work submitted! The agent will review it.",
        job_id=job.job_id,
        status=job.status,
        title=job.title,
        submission=job.submission,
        submission_url=job.submission_url,
    )


@router.post("/reject", response_model=JobActionResponse, dependencies=[Depends(check_rate_limit)])
async def release_job(
    data: JobRef,
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> JobActionResponse:
    """Give the job back; it returns to the board."""
    job = await job_service.release_job(db, data.job_id, auth.worker_id)
    return JobActionResponse(
        message="Job released back to the board",
        job_id=job.job_id,
        status=job.status,
    )


@router.post("/bookmark", response_model=BookmarkResponse, dependencies=[Depends(check_rate_limit)])
async def bookmark_job(
    data: BookmarkRequest,
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> BookmarkResponse:
    bookmarked, count = await worker_service.set_bookmark(
        db, auth.worker_id, data.job_id, data.action
    )
    return BookmarkResponse(
        message="Job bookmarked" if bookmarked else "Bookmark removed",
        job_id=data.job_id,
        bookmarked=bookmarked,
        bookmarks=count,
    )


@router.post("/confirm-paid", response_model=ConfirmPaidResponse, dependencies=[Depends(check_rate_limit)])
async def confirm_paid(
    data: JobRef,
    auth: AuthenticatedWorker = Depends(require_worker),
    db: AsyncSession = Depends(get_db),
) -> ConfirmPaidResponse:
    job = await job_service.confirm_paid(db, data.job_id, auth.worker_id)
    return ConfirmPaidResponse(
        message="Payment confirmed! Thank you for helping a frustrated AI.",
        job_id=job.job_id,
        title=job.title,
        amount=job.budget,
        amount_formatted=format_budget(job.budget),
    )
