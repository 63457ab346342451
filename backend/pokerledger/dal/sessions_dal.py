"""Session Data Access Layer -- MongoDB operations for the sessions collection.

The session document is the single shared mutable resource. Writes are
field-level merges (last write wins per field) except for game-state
transitions, which go through a compare-and-set on ``game_state``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from pokerledger.models.common import GameState
from pokerledger.models.session import Session

logger = logging.getLogger("pokerledger.dal.sessions")

COLLECTION = "sessions"

OnChange = Callable[[Session], Awaitable[None]]


def _session_sort_key(session_id: str) -> tuple[str, int]:
    prefix, _, seq = session_id.partition("-")
    return prefix, int(seq) if seq.isdigit() else 0


class SessionDAL:
    """Data access layer for the sessions collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db[COLLECTION]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, session: Session) -> Session:
        """Insert a new session document keyed by its session id.

        Raises:
            pymongo.errors.DuplicateKeyError: The id is already taken.
        """
        await self._collection.insert_one(session.to_mongo_dict())
        logger.info("Created session %s", session.session_id)
        return session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def load(self, session_id: str) -> Optional[Session]:
        doc = await self._collection.find_one({"_id": session_id})
        if doc is None:
            return None
        return Session(**doc)

    async def get_revision(self, session_id: str) -> Optional[int]:
        doc = await self._collection.find_one(
            {"_id": session_id}, {"revision": 1}
        )
        if doc is None:
            return None
        return doc.get("revision", 0)

    async def count_for_date(self, date_prefix: str) -> int:
        return await self._collection.count_documents({"date_prefix": date_prefix})

    async def list_since(self, date_prefix: str, limit: int = 100) -> list[str]:
        """Session ids whose date prefix is on or after ``date_prefix``, newest first."""
        cursor = self._collection.find(
            {"date_prefix": {"$gte": date_prefix}}, {"_id": 1}
        )
        ids = [doc["_id"] async for doc in cursor]
        # "20250101-10" must sort after "20250101-9".
        ids.sort(key=_session_sort_key, reverse=True)
        return ids[:limit]

    async def list_finished(self) -> list[Session]:
        cursor = self._collection.find({"game_state": str(GameState.FINISHED)})
        sessions: list[Session] = []
        async for doc in cursor:
            sessions.append(Session(**doc))
        return sessions

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def save(
        self,
        session_id: str,
        partial: dict[str, Any],
        merge: bool = True,
    ) -> int:
        """Write ``partial`` to the session document and bump its revision.

        With ``merge=True`` only the given top-level fields are overwritten;
        otherwise the whole document is replaced (revision still advances).

        Returns:
            The new revision.
        """
        fields = {k: v for k, v in partial.items() if k not in ("_id", "revision")}
        if merge:
            doc = await self._collection.find_one_and_update(
                {"_id": session_id},
                {"$set": fields, "$inc": {"revision": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        else:
            current = await self.get_revision(session_id) or 0
            replacement = {**fields, "revision": current + 1}
            doc = await self._collection.find_one_and_replace(
                {"_id": session_id},
                replacement,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return doc["revision"]

    async def compare_and_set_state(
        self,
        session_id: str,
        expected: GameState,
        new_state: GameState,
        fields: Optional[dict[str, Any]] = None,
    ) -> Optional[int]:
        """Atomically move ``game_state`` from ``expected`` to ``new_state``.

        ``fields`` are written in the same update.

        Returns:
            The new revision, or None if the stored state was not ``expected``.
        """
        update_fields = dict(fields or {})
        update_fields["game_state"] = str(new_state)
        doc = await self._collection.find_one_and_update(
            {"_id": session_id, "game_state": str(expected)},
            {"$set": update_fields, "$inc": {"revision": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            logger.warning(
                "State CAS lost for session %s (%s -> %s)",
                session_id, expected, new_state,
            )
            return None
        logger.info("Session %s state %s -> %s", session_id, expected, new_state)
        return doc["revision"]

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def subscribe(
        self,
        session_id: str,
        on_change: OnChange,
        interval: float = 2.0,
        since_revision: int = 0,
    ) -> Callable[[], None]:
        """Poll the session and call ``on_change`` whenever its revision advances.

        Returns:
            A callable that stops the subscription.
        """
        task = asyncio.create_task(
            self._poll(session_id, on_change, interval, since_revision)
        )

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _poll(
        self,
        session_id: str,
        on_change: OnChange,
        interval: float,
        last_seen: int,
    ) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                revision = await self.get_revision(session_id)
                if revision is None or revision <= last_seen:
                    continue
                session = await self.load(session_id)
                if session is None:
                    continue
                last_seen = session.revision
                await on_change(session)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error polling session %s: %s", session_id, str(e))
