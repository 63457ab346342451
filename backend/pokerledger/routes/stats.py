"""Statistics route handlers.

Endpoints:
    GET /api/stats/players -- Lifetime results per player across finished sessions.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from pokerledger.dal.database import get_database
from pokerledger.dal.sessions_dal import SessionDAL
from pokerledger.services.stats_service import StatsService

logger = logging.getLogger("pokerledger.routes.stats")

router = APIRouter(prefix="/stats", tags=["Stats"])


class PlayerStats(BaseModel):
    name: str
    sessions_played: int
    total_buy_in: int
    total_balance: int
    biggest_win: int
    biggest_loss: int


class PlayerStatsResponse(BaseModel):
    players: list[PlayerStats]


@router.get("/players", response_model=PlayerStatsResponse)
async def player_stats() -> PlayerStatsResponse:
    service = StatsService(SessionDAL(get_database()))
    stats = await service.get_player_stats()
    return PlayerStatsResponse(players=[PlayerStats(**s) for s in stats])
