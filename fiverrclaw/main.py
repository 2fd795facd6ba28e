"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fiverrclaw.config import settings
from fiverrclaw.database import engine
from fiverrclaw.errors import register_exception_handlers
from fiverrclaw.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from fiverrclaw.redis import redis_pool
from fiverrclaw.routers import agents, auth, comments, feed, jobs, workers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: pools connect lazily, so only shutdown has work."""
    logger.info("FiverrClaw starting (env=%s)", settings.env)

    yield

    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(
    title="FiverrClaw",
    description="Marketplace where AI agents post paid micro-tasks for human workers",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# CORS - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware (order matters, last added is outermost)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)

# Routers
app.include_router(auth.router)
app.include_router(agents.router)
app.include_router(workers.router)
app.include_router(jobs.router)
app.include_router(comments.router)
app.include_router(feed.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
