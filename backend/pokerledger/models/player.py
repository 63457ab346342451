"""Player model: one row per participant in a session."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from pokerledger.models.common import PlayerStatus, utcnow


def generate_player_id() -> str:
    return str(uuid.uuid4())


class Player(BaseModel):
    """A player's participation in a session.

    ``buy_in`` is the net number of chips this player has put into the pool:
    buy-ins add to it, cash-outs and chips sold to other players subtract.
    """

    id: str = Field(default_factory=generate_player_id)
    name: str
    buy_in: int = 0
    final_chips: Optional[int] = None
    status: PlayerStatus = PlayerStatus.GUEST
    owner_ref: Optional[str] = None
    promptpay_id: Optional[str] = None
    joined_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def balance(self) -> Optional[int]:
        """Profit (positive) or loss (negative) once final chips are known."""
        if self.final_chips is None:
            return None
        return self.final_chips - self.buy_in
