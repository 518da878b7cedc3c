"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Serves the clinic dashboard API: session auth, compliance endpoints, and
the HIPAA audit trail behind them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.admin.api import router as compliance_router
from src.admin.api import trail_router as audit_trail_router
from src.admin.auth import router as auth_router
from src.admin.sessions import SessionAuthMiddleware
from src.config import settings
from src.db.engine import db_lifespan
from src.security.middleware import drain_audit_writes
from src.security.retention import initialize_default_policies

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting clinic dashboard API (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        await initialize_default_policies()

        try:
            yield
        finally:
            logger.info("Shutting down clinic dashboard API...")
            # Audit writes still in flight must land before the pool closes
            await drain_audit_writes()
            logger.info("Pending audit writes drained")

    logger.info("Shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Clinic Receptionist Dashboard API",
    description="Admin backend for the AI phone receptionist, with HIPAA audit trail",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(SessionAuthMiddleware)
app.include_router(auth_router)
app.include_router(compliance_router)
app.include_router(audit_trail_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
