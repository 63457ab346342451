"""Session aggregate: one complete poker game stored in the sessions collection."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from pokerledger.models.common import GameState, utcnow
from pokerledger.models.ledger import LogEntry
from pokerledger.models.player import Player
from pokerledger.models.settlement import SettlementResult


class Session(BaseModel):
    """Represents a poker session document.

    The session id (``YYYYMMDD-N``) doubles as the MongoDB ``_id``.
    ``revision`` is bumped by the store on every write and is what live
    subscribers watch for.
    """

    model_config = {"populate_by_name": True}

    session_id: str = Field(alias="_id")
    date_prefix: str
    players: list[Player] = Field(default_factory=list)
    transaction_log: list[LogEntry] = Field(default_factory=list)
    chip_value: float = 0.5
    game_state: GameState = GameState.IN_PROGRESS
    final_calculations: Optional[SettlementResult] = None
    created_at: datetime = Field(default_factory=utcnow)
    revision: int = 0

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def find_player_by_name(self, name: str) -> Optional[Player]:
        wanted = name.strip().lower()
        return next((p for p in self.players if p.name.lower() == wanted), None)

    def find_player_by_owner(self, owner_ref: str) -> Optional[Player]:
        return next((p for p in self.players if p.owner_ref == owner_ref), None)

    def next_seq(self) -> int:
        if not self.transaction_log:
            return 1
        return self.transaction_log[-1].seq + 1

    def to_mongo_dict(self) -> dict[str, Any]:
        """Convert to a MongoDB document keyed by ``_id``."""
        return self.model_dump(by_alias=True, mode="json")

    def mongo_fields(self, *fields: str) -> dict[str, Any]:
        """Serialized subset of top-level fields for a merge write."""
        doc = self.to_mongo_dict()
        return {name: doc[name] for name in fields}
