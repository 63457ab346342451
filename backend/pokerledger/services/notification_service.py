"""Notification delivery for ledger events.

Every ledger append becomes a ``NotificationEvent`` that is fanned out to
the configured notifiers: an outbound Discord webhook and the poll-based
notification feed. Delivery is best-effort: failures are logged and never
reach the ledger or settlement path.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel

from pokerledger.dal.notifications_dal import NotificationDAL
from pokerledger.errors import NotificationFailure
from pokerledger.models.common import CENTRAL_BOX, LogEntryType
from pokerledger.models.ledger import LogEntry
from pokerledger.models.notification import Notification
from pokerledger.models.settlement import SettlementResult

logger = logging.getLogger("pokerledger.services.notification")

WEBHOOK_USERNAME = "Poker Ledger Bot"

COLOR_DEFAULT = 0x5865F2
COLOR_BOX_BUY_IN = 0x57F287
COLOR_PEER_BUY_IN = 0x3498DB
COLOR_CASH_OUT = 0xED4245


class NotificationEvent(BaseModel):
    """The notifier-facing view of a ledger entry."""

    type: LogEntryType
    session_id: str
    timestamp: datetime
    chip_value: float = 1.0
    player: Optional[str] = None
    amount: Optional[int] = None
    source: Optional[str] = None
    summary: Optional[SettlementResult] = None
    message: Optional[str] = None

    @classmethod
    def from_entry(
        cls, entry: LogEntry, session_id: str, chip_value: float = 1.0
    ) -> "NotificationEvent":
        return cls(
            type=entry.type,
            session_id=session_id,
            timestamp=entry.timestamp,
            chip_value=chip_value,
            player=getattr(entry, "player", None),
            amount=getattr(entry, "amount", None),
            source=getattr(entry, "source", None),
            summary=getattr(entry, "summary", None),
            message=getattr(entry, "message", None),
        )


def format_money(amount_in_chips: float, chip_value: float, currency_symbol: str) -> str:
    return f"{currency_symbol}{amount_in_chips * chip_value:.2f}"


def describe_event(event: NotificationEvent) -> str:
    """One-line human readable description of an event."""
    if event.type == LogEntryType.INITIAL_BUY_IN:
        return f"{event.player} bought in for {event.amount} chips"
    if event.type == LogEntryType.PLAYER_BUY_IN:
        return f"{event.player} bought {event.amount} chips ({event.source})"
    if event.type == LogEntryType.CASH_OUT:
        return f"{event.player} cashed out {event.amount} chips"
    if event.type == LogEntryType.GAME_END_SUMMARY:
        count = len(event.summary.transactions) if event.summary else 0
        return f"Game over: {count} settlement payment(s)"
    return event.message or str(event.type)


def build_discord_embed(event: NotificationEvent, currency_symbol: str) -> dict[str, Any]:
    """Build the Discord embed for an event."""
    embed: dict[str, Any] = {
        "title": f"Transaction: {event.type}",
        "color": COLOR_DEFAULT,
        "timestamp": event.timestamp.isoformat(),
        "fields": [],
        "footer": {"text": f"Session ID: {event.session_id}"},
    }
    if event.player:
        embed["fields"].append({"name": "Player", "value": event.player, "inline": True})
    if event.amount:
        embed["fields"].append(
            {"name": "Amount", "value": f"{event.amount} chips", "inline": True}
        )
    if event.source:
        embed["fields"].append({"name": "Source", "value": event.source, "inline": True})
    if event.message:
        embed["description"] = event.message

    if event.type in (LogEntryType.INITIAL_BUY_IN, LogEntryType.PLAYER_BUY_IN):
        embed["color"] = COLOR_BOX_BUY_IN if event.source == CENTRAL_BOX else COLOR_PEER_BUY_IN
    elif event.type == LogEntryType.CASH_OUT:
        embed["color"] = COLOR_CASH_OUT
    elif event.type == LogEntryType.GAME_END_SUMMARY and event.summary is not None:
        money = lambda chips: format_money(chips, event.chip_value, currency_symbol)
        embed["title"] = "Game Over - Final Results"
        embed["description"] = f"Summary for session **{event.session_id}**."
        embed["fields"] = [
            {
                "name": p.name,
                "value": (
                    f"Profit/Loss: **{'+' if p.balance > 0 else ''}{money(p.balance)}**\n"
                    f"(Final: {p.final_chips}, Buy-in: {p.buy_in})"
                ),
                "inline": False,
            }
            for p in event.summary.players
        ]
        if event.summary.transactions:
            settlements = "\n".join(
                f"**{t.from_player}** pays **{t.to_player}** `{money(t.amount)}`"
                for t in event.summary.transactions
            )
        else:
            settlements = "Everyone broke even!"
        embed["fields"].append({"name": "--- Settlements ---", "value": settlements})
    return embed


# ---------------------------------------------------------------------------
# Notifiers
# ---------------------------------------------------------------------------

class Notifier(Protocol):
    name: str

    async def send(self, event: NotificationEvent) -> None:
        ...


class DiscordWebhookNotifier:
    """Posts an embed per event to a Discord webhook."""

    name = "discord"

    def __init__(
        self,
        webhook_url: str,
        currency_symbol: str = "฿",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        self._url = webhook_url
        self._currency_symbol = currency_symbol
        self._client = client
        self._timeout = timeout

    async def send(self, event: NotificationEvent) -> None:
        payload = {
            "username": WEBHOOK_USERNAME,
            "embeds": [build_discord_embed(event, self._currency_symbol)],
        }
        if self._client is not None:
            response = await self._client.post(self._url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=payload)
        response.raise_for_status()


class FeedNotifier:
    """Stores each event in the poll-based notification feed."""

    name = "feed"

    def __init__(self, notification_dal: NotificationDAL) -> None:
        self._dal = notification_dal

    async def send(self, event: NotificationEvent) -> None:
        await self._dal.create(
            Notification(
                session_id=event.session_id,
                event_type=str(event.type),
                message=describe_event(event),
                player=event.player,
                amount=event.amount,
            )
        )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class NotificationService:
    """Fans events out to notifiers; never raises."""

    def __init__(self, notifiers: list[Notifier]) -> None:
        self._notifiers = list(notifiers)
        self._pending: set[asyncio.Task] = set()

    async def notify(self, event: NotificationEvent) -> int:
        """Deliver ``event`` to every notifier.

        Returns:
            The number of notifiers that accepted the event.
        """
        delivered = 0
        for notifier in self._notifiers:
            try:
                await notifier.send(event)
            except Exception as e:
                failure = NotificationFailure(
                    f"{notifier.name} notifier failed for {event.type} "
                    f"in session {event.session_id}: {e}"
                )
                logger.error("%s", failure)
                continue
            delivered += 1
        return delivered

    def dispatch(self, event: NotificationEvent) -> None:
        """Fire-and-forget delivery on the running event loop."""
        if not self._notifiers:
            return
        task = asyncio.create_task(self.notify(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for outstanding deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
