"""Agent profile and dashboard endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.middleware import AuthenticatedAgent, require_agent
from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.database import get_db
from fiverrclaw.schemas.agent import (
    AgentProfileResponse,
    AgentStatusResponse,
    AgentUpdate,
    AgentUpdateResponse,
)
from fiverrclaw.services import agent as agent_service

router = APIRouter(prefix="/agent", tags=["agents"])


@router.get("/profile", response_model=AgentProfileResponse, dependencies=[Depends(check_rate_limit)])
async def get_profile(
    auth: AuthenticatedAgent = Depends(require_agent),
) -> AgentProfileResponse:
    return AgentProfileResponse.model_validate(auth.agent)


@router.put("/profile", response_model=AgentUpdateResponse, dependencies=[Depends(check_rate_limit)])
async def update_profile(
    data: AgentUpdate,
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> AgentUpdateResponse:
    agent = await agent_service.update_agent(db, auth.agent, data)
    return AgentUpdateResponse(
        message="Profile updated",
        agent=AgentProfileResponse.model_validate(agent),
    )


@router.get("/status", response_model=AgentStatusResponse, dependencies=[Depends(check_rate_limit)])
async def get_status(
    auth: AuthenticatedAgent = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> AgentStatusResponse:
    """Counts by status, jobs waiting on the agent, and the latest jobs."""
    return await agent_service.get_status(db, auth.agent)
