"""Lifetime player statistics aggregated from finished sessions."""

import logging
from typing import Any

from pokerledger.dal.sessions_dal import SessionDAL

logger = logging.getLogger("pokerledger.services.stats")


class StatsService:
    """Aggregates settlement results across every finished session."""

    def __init__(self, session_dal: SessionDAL) -> None:
        self._session_dal = session_dal

    async def get_player_stats(self) -> list[dict[str, Any]]:
        """Per-player totals, best overall balance first.

        Players are matched by case-insensitive name across sessions.
        """
        sessions = await self._session_dal.list_finished()
        stats: dict[str, dict[str, Any]] = {}

        for session in sessions:
            if session.final_calculations is None:
                continue
            for result in session.final_calculations.players:
                key = result.name.lower()
                entry = stats.setdefault(
                    key,
                    {
                        "name": result.name,
                        "sessions_played": 0,
                        "total_buy_in": 0,
                        "total_balance": 0,
                        "biggest_win": 0,
                        "biggest_loss": 0,
                    },
                )
                entry["sessions_played"] += 1
                entry["total_buy_in"] += result.buy_in
                entry["total_balance"] += result.balance
                entry["biggest_win"] = max(entry["biggest_win"], result.balance)
                entry["biggest_loss"] = min(entry["biggest_loss"], result.balance)

        ranked = sorted(stats.values(), key=lambda s: s["total_balance"], reverse=True)
        logger.info(
            "Aggregated stats for %d player(s) over %d session(s)",
            len(ranked), len(sessions),
        )
        return ranked
