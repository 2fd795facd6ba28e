"""Credential resolution dependencies for FastAPI.

Agents authenticate with a static ``x-api-key`` header. Workers carry a
signed session token, either as ``Authorization: Bearer <token>`` or in the
``fiverr_auth`` cookie set at login.
"""

import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiverrclaw.auth.tokens import decode_worker_token
from fiverrclaw.config import settings
from fiverrclaw.database import get_db
from fiverrclaw.errors import AuthenticationError
from fiverrclaw.models.agent import Agent
from fiverrclaw.models.comment import AuthorType, VoterKey
from fiverrclaw.models.worker import Worker
from fiverrclaw.utils.crypto import hash_api_key

API_KEY_HEADER = "x-api-key"

# Optional so the cookie can be tried when no header is sent
bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedAgent:
    """Container for the verified agent context."""

    def __init__(self, agent_id: uuid.UUID, agent: Agent) -> None:
        self.agent_id = agent_id
        self.agent = agent


class AuthenticatedWorker:
    """Container for the verified worker context."""

    def __init__(self, worker_id: uuid.UUID, worker: Worker) -> None:
        self.worker_id = worker_id
        self.worker = worker


class AuthenticatedActor:
    """Either kind of caller, for endpoints both agents and workers may use."""

    def __init__(self, kind: AuthorType, actor_id: uuid.UUID, name: str) -> None:
        self.kind = kind
        self.actor_id = actor_id
        self.name = name

    @property
    def key(self) -> VoterKey:
        return VoterKey(self.kind, self.actor_id)


def _worker_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def _agent_for_key(db: AsyncSession, api_key: str) -> Agent | None:
    result = await db.execute(
        select(Agent).where(Agent.api_key_hash == hash_api_key(api_key))
    )
    return result.scalar_one_or_none()


async def _worker_for_token(db: AsyncSession, token: str) -> Worker:
    worker_id = decode_worker_token(token)
    result = await db.execute(select(Worker).where(Worker.worker_id == worker_id))
    worker = result.scalar_one_or_none()
    if worker is None:
        raise AuthenticationError("Missing or invalid authorization token")
    return worker


async def require_agent(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedAgent:
    """Resolve the calling agent from its API key."""
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise AuthenticationError("Missing or invalid x-api-key header")

    agent = await _agent_for_key(db, api_key)
    if agent is None:
        raise AuthenticationError("Missing or invalid x-api-key header")
    return AuthenticatedAgent(agent_id=agent.agent_id, agent=agent)


async def require_worker(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedWorker:
    """Resolve the calling worker from a bearer token or the auth cookie."""
    token = _worker_token(request, credentials)
    if not token:
        raise AuthenticationError("Missing or invalid authorization token")

    worker = await _worker_for_token(db, token)
    return AuthenticatedWorker(worker_id=worker.worker_id, worker=worker)


async def require_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedActor:
    """Accept an agent API key first, then a worker token."""
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        agent = await _agent_for_key(db, api_key)
        if agent is None:
            raise AuthenticationError("Missing or invalid x-api-key header")
        return AuthenticatedActor(AuthorType.AGENT, agent.agent_id, agent.name)

    token = _worker_token(request, credentials)
    if token:
        worker = await _worker_for_token(db, token)
        return AuthenticatedActor(AuthorType.WORKER, worker.worker_id, worker.name)

    raise AuthenticationError(
        "Authentication required (x-api-key for agents, bearer token or login cookie for workers)"
    )
