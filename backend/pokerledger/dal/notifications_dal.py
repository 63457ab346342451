"""Notification Data Access Layer -- MongoDB operations for the notifications collection."""

import logging
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from pokerledger.models.notification import Notification

logger = logging.getLogger("pokerledger.dal.notifications")

COLLECTION = "notifications"


class NotificationDAL:
    """Data access layer for the notifications collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db[COLLECTION]

    async def create(self, notification: Notification) -> Notification:
        """Insert a new notification document and populate its id."""
        doc = notification.to_mongo_dict()
        result = await self._collection.insert_one(doc)
        notification.id = str(result.inserted_id)
        logger.debug(
            "Created notification %s (type=%s) in session=%s",
            notification.id,
            notification.event_type,
            notification.session_id,
        )
        return notification

    async def list_for_session(
        self,
        session_id: str,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[Notification]:
        """Notifications for a session, oldest first, optionally after ``since``."""
        query: dict = {"session_id": session_id}
        if since is not None:
            query["created_at"] = {"$gt": since}
        cursor = self._collection.find(query).sort("created_at", 1).limit(limit)
        notifications: list[Notification] = []
        async for doc in cursor:
            doc["_id"] = str(doc["_id"])
            notifications.append(Notification(**doc))
        return notifications
