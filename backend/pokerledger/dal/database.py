"""Motor client lifecycle and index setup for the pokerledger collections.

The app holds one client per process; DAL classes receive the database from
``get_database()`` (routes) or from the session registry.
"""

import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from pokerledger.config import settings

logger = logging.getLogger("pokerledger.dal.database")

_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None

_SERVER_SELECTION_TIMEOUT_MS = 5000
NOTIFICATION_TTL_SECONDS = 48 * 60 * 60


async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """Open the process-wide client and check the server answers a ping."""
    global _client, _database

    _client = AsyncIOMotorClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=_SERVER_SELECTION_TIMEOUT_MS,
    )
    _database = _client[settings.DATABASE_NAME]
    await _database.command("ping")
    logger.info("MongoDB ready (database=%s)", settings.DATABASE_NAME)
    return _database


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
        logger.info("MongoDB client closed")
    _client = None
    _database = None


def get_database() -> AsyncIOMotorDatabase:
    """Return the connected database.

    Raises:
        RuntimeError: ``connect_to_mongo()`` has not run (or failed).
    """
    if _database is None:
        raise RuntimeError("MongoDB is not connected")
    return _database


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create all indexes used by the DAL classes.

    Idempotent; MongoDB ignores indexes that already exist.
    """
    logger.info("Ensuring MongoDB indexes")

    # --- sessions ---
    # Recent-session listing and per-day sequence counting.
    await db.sessions.create_index(
        [("date_prefix", DESCENDING)],
        name="idx_date_prefix",
    )
    # Stats aggregation over finished sessions.
    await db.sessions.create_index(
        [("game_state", ASCENDING)],
        name="idx_game_state",
    )

    # --- notifications ---
    await db.notifications.create_index(
        [("session_id", ASCENDING), ("created_at", ASCENDING)],
        name="idx_session_created",
    )
    await db.notifications.create_index(
        [("created_at", ASCENDING)],
        expireAfterSeconds=NOTIFICATION_TTL_SECONDS,
        name="ttl_notifications_48h",
    )

    # --- player_profiles ---
    await db.player_profiles.create_index(
        [("is_quick_add", ASCENDING)],
        name="idx_quick_add",
    )

    logger.info("MongoDB indexes ready")
