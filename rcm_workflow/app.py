"""FastAPI service for the RCM workflow rules engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rcm_workflow import __version__
from rcm_workflow.config import ACTION_TIMEOUT_SECONDS, CORS_ORIGINS, LOG_LEVEL, MAX_ACTION_DELAY_MS
from rcm_workflow.routes import limiter, workflow_router
from rcm_workflow.rules import WorkflowEngine

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine on startup and freeze its handler registry."""
    engine = WorkflowEngine(
        action_timeout_seconds=ACTION_TIMEOUT_SECONDS,
        max_action_delay_ms=MAX_ACTION_DELAY_MS,
    )
    engine.freeze()
    app.state.engine = engine
    logger.info(
        f"Workflow engine ready with handlers: {', '.join(engine.registry.registered_types())}"
    )

    yield

    app.state.engine = None


app = FastAPI(
    title="RCM Workflow Rules Engine",
    description="Rule validation, dry-run testing and templates for revenue cycle automation",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting: dry-run evaluation is limited per client address
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(workflow_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    engine = getattr(app.state, "engine", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action_handlers": engine.registry.registered_types() if engine else [],
    }
