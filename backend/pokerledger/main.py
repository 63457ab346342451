"""
Poker Ledger FastAPI Application Entry Point.

Configures FastAPI, sets up middleware, registers routes and manages the
MongoDB connection and session registry lifecycle.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pokerledger.config import settings
from pokerledger.dal.database import (
    close_mongo_connection,
    connect_to_mongo,
    ensure_indexes,
)
from pokerledger.routes.health import router as health_router
from pokerledger.routes.profiles import router as profiles_router
from pokerledger.routes.sessions import router as sessions_router
from pokerledger.routes.stats import router as stats_router
from pokerledger.services.session_registry import close_session_registry

logger = logging.getLogger("pokerledger.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect and index on startup; flush open sessions before disconnecting."""
    try:
        db = await connect_to_mongo()
        await ensure_indexes(db)
        logger.info("Poker Ledger v%s started", settings.APP_VERSION)
    except Exception as e:
        # /health reports "degraded" until MongoDB is reachable.
        logger.warning("MongoDB unavailable at startup: %s", str(e))

    yield

    await close_session_registry()
    await close_mongo_connection()
    logger.info("Poker Ledger shutdown complete")


app = FastAPI(
    title="Poker Ledger API",
    description="Poker night buy-in ledger and cash-out settlement - REST API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-Id", "X-Display-Name"],
    max_age=600,  # Cache preflight requests for 10 minutes
)

app.include_router(health_router)  # Health endpoint at root level
app.include_router(health_router, prefix="/api")
app.include_router(sessions_router, prefix="/api")
app.include_router(profiles_router, prefix="/api")
app.include_router(stats_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Poker Ledger API",
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pokerledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
