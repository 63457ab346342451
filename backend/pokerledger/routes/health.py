"""Liveness endpoint reporting the service version and MongoDB reachability."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from pokerledger.config import settings
from pokerledger.dal.database import get_database

logger = logging.getLogger("pokerledger.routes.health")
router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, str]


async def _database_status() -> str:
    try:
        await get_database().command("ping")
    except Exception as e:
        logger.warning("MongoDB ping failed: %s", str(e))
        return "down"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Always answers 200; a failed ping marks the service ``degraded``."""
    database = await _database_status()
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=settings.APP_VERSION,
        checks={"database": database},
    )
