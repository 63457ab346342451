"""Player profile Data Access Layer -- per-name settings shared across sessions.

Profiles are keyed by the case-folded player name, so "alice" and "Alice"
share one profile; the spelling first seen is kept for display.
"""

import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from pokerledger.models.common import utcnow
from pokerledger.models.profile import PlayerProfile, profile_key

logger = logging.getLogger("pokerledger.dal.profiles")

COLLECTION = "player_profiles"


class PlayerProfileDAL:
    """Data access layer for the player_profiles collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db[COLLECTION]

    async def get(self, name: str) -> Optional[PlayerProfile]:
        doc = await self._collection.find_one({"_id": profile_key(name)})
        if doc is None:
            return None
        return PlayerProfile(**doc)

    async def _upsert(self, name: str, fields: dict[str, Any]) -> PlayerProfile:
        doc = await self._collection.find_one_and_update(
            {"_id": profile_key(name)},
            {
                "$set": {**fields, "updated_at": utcnow()},
                "$setOnInsert": {"name": name.strip()},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return PlayerProfile(**doc)

    async def set_promptpay_id(self, name: str, promptpay_id: str) -> PlayerProfile:
        return await self._upsert(name, {"promptpay_id": promptpay_id})

    async def toggle_quick_add(self, name: str) -> PlayerProfile:
        """Flip the quick-add flag for ``name``, creating the profile if needed."""
        current = await self.get(name)
        is_quick_add = not (current is not None and current.is_quick_add)
        profile = await self._upsert(name, {"is_quick_add": is_quick_add})
        logger.info("Quick-add for %s set to %s", profile.name, is_quick_add)
        return profile

    async def list_quick_add(self) -> list[str]:
        """Display names of quick-add profiles, ordered by key."""
        cursor = self._collection.find({"is_quick_add": True}).sort("_id", 1)
        return [doc["name"] async for doc in cursor]
