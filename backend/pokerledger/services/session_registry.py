"""Registry of active session services.

Holds one ``SessionService`` per active session, creates new sessions with
``YYYYMMDD-N`` ids and shuts everything down cleanly. Services that sit idle
too long, or fall off the end of the most-recently-used list, are closed and
reloaded from the store on their next use.
"""

import logging
import time
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from pokerledger.config import settings
from pokerledger.dal.database import get_database
from pokerledger.dal.notifications_dal import NotificationDAL
from pokerledger.dal.profiles_dal import PlayerProfileDAL
from pokerledger.dal.sessions_dal import SessionDAL
from pokerledger.errors import SessionNotFound
from pokerledger.models.common import LogEntryType
from pokerledger.models.session import Session
from pokerledger.services.ledger import Ledger
from pokerledger.services.notification_service import (
    DiscordWebhookNotifier,
    FeedNotifier,
    NotificationEvent,
    NotificationService,
)
from pokerledger.services.session_service import SessionService

logger = logging.getLogger("pokerledger.services.registry")

_MAX_ID_RETRIES = 10


def date_prefix_for(day: datetime) -> str:
    return day.strftime("%Y%m%d")


def build_notification_service(notification_dal: NotificationDAL) -> NotificationService:
    """Notifiers enabled by the current settings."""
    notifiers = [FeedNotifier(notification_dal)]
    if settings.discord_webhook_enabled:
        notifiers.append(
            DiscordWebhookNotifier(
                settings.DISCORD_WEBHOOK_URL,
                currency_symbol=settings.CURRENCY_SYMBOL,
            )
        )
    return NotificationService(notifiers)


class SessionRegistry:
    """Owns the SessionService of every session touched by this process."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        notification_service: Optional[NotificationService] = None,
        save_delay: Optional[float] = None,
        poll_interval: Optional[float] = None,
        live_updates: bool = True,
        max_active: Optional[int] = None,
        idle_seconds: Optional[float] = None,
    ) -> None:
        self.session_dal = SessionDAL(db)
        self.profile_dal = PlayerProfileDAL(db)
        self.notification_dal = NotificationDAL(db)
        self._notifications = notification_service or build_notification_service(
            self.notification_dal
        )
        self._save_delay = (
            settings.SAVE_DEBOUNCE_SECONDS if save_delay is None else save_delay
        )
        self._poll_interval = (
            settings.SUBSCRIBE_POLL_SECONDS if poll_interval is None else poll_interval
        )
        self._live_updates = live_updates
        self._max_active = (
            settings.MAX_ACTIVE_SESSIONS if max_active is None else max_active
        )
        self._idle_seconds = (
            settings.SESSION_IDLE_SECONDS if idle_seconds is None else idle_seconds
        )
        # Least recently used first.
        self._services: OrderedDict[str, SessionService] = OrderedDict()
        self._last_used: dict[str, float] = {}

    @property
    def active_session_ids(self) -> list[str]:
        return list(self._services)

    def _build(self, session: Session) -> SessionService:
        service = SessionService(
            session,
            self.session_dal,
            self._notifications,
            profile_dal=self.profile_dal,
            save_delay=self._save_delay,
            poll_interval=self._poll_interval,
        )
        self._services[session.session_id] = service
        if self._live_updates:
            service.start()
        return service

    async def _touch(self, session_id: str) -> None:
        """Mark ``session_id`` as just used and close services past their welcome."""
        self._services.move_to_end(session_id)
        now = time.monotonic()
        self._last_used[session_id] = now

        evicted: list[tuple[str, SessionService, bool]] = []
        for other_id in list(self._services):
            if other_id == session_id:
                continue
            over_capacity = len(self._services) > self._max_active
            idle = now - self._last_used.get(other_id, now) > self._idle_seconds
            if not (over_capacity or idle):
                # The rest were used more recently.
                break
            self._last_used.pop(other_id, None)
            evicted.append((other_id, self._services.pop(other_id), idle))

        for other_id, service, idle in evicted:
            await service.close()
            logger.info(
                "Closed %s session %s", "idle" if idle else "least recently used", other_id
            )

    async def create_session(self, now: Optional[datetime] = None) -> SessionService:
        """Start a new session numbered after today's existing ones.

        Raises:
            HTTPException 500: No free id after the maximum number of retries.
        """
        now = now or datetime.now()
        date_prefix = date_prefix_for(now)
        existing = await self.session_dal.count_for_date(date_prefix)

        for attempt in range(_MAX_ID_RETRIES):
            session_id = f"{date_prefix}-{existing + 1 + attempt}"
            session = Session(
                session_id=session_id,
                date_prefix=date_prefix,
                chip_value=settings.DEFAULT_CHIP_VALUE,
            )
            started = Ledger(session).append_lifecycle_event(
                LogEntryType.SESSION_STARTED, f"Session {session_id} started."
            )
            try:
                await self.session_dal.create(session)
            except DuplicateKeyError:
                logger.warning(
                    "Session id collision on attempt %d: %s", attempt + 1, session_id
                )
                continue

            service = self._build(session)
            await self._touch(session_id)
            self._notifications.dispatch(
                NotificationEvent.from_entry(started, session_id, session.chip_value)
            )
            logger.info("Session %s started", session_id)
            return service

        logger.error("Failed to allocate a session id after %d attempts", _MAX_ID_RETRIES)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to allocate a session id. Please try again.",
        )

    async def get(self, session_id: str) -> SessionService:
        """Return the service for ``session_id``, loading it on first use.

        Raises:
            SessionNotFound: No such session in the store.
        """
        service = self._services.get(session_id)
        if service is None:
            session = await self.session_dal.load(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            # A concurrent caller may have built it while we were loading.
            service = self._services.get(session_id) or self._build(session)
        await self._touch(session_id)
        return service

    async def list_recent(self, today: Optional[datetime] = None) -> list[str]:
        """Session ids from the last ``RECENT_SESSION_DAYS`` days, newest first."""
        today = today or datetime.now()
        since = today - timedelta(days=settings.RECENT_SESSION_DAYS)
        return await self.session_dal.list_since(date_prefix_for(since))

    async def close_all(self) -> None:
        for service in list(self._services.values()):
            await service.close()
        self._services.clear()
        self._last_used.clear()
        await self._notifications.drain()


# ---------------------------------------------------------------------------
# Process-wide registry
# ---------------------------------------------------------------------------

_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Return the process registry, creating it on first use."""
    global _registry

    if _registry is None:
        _registry = SessionRegistry(get_database())
    return _registry


async def close_session_registry() -> None:
    global _registry

    if _registry is not None:
        await _registry.close_all()
        _registry = None
