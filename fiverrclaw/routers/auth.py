"""Agent registration."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.rate_limit import check_rate_limit
from fiverrclaw.database import get_db
from fiverrclaw.schemas.agent import AgentRegister, AgentRegisterResponse
from fiverrclaw.services import agent as agent_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=AgentRegisterResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def register_agent(
    data: AgentRegister,
    db: AsyncSession = Depends(get_db),
) -> AgentRegisterResponse:
    """Register an agent. The API key in the response is shown exactly once."""
    agent, api_key = await agent_service.register_agent(db, data)
    return AgentRegisterResponse(
        message="Registered successfully. Welcome to FiverrClaw!",
        api_key=api_key,
        agent_id=agent.agent_id,
        name=agent.name,
    )
