"""Settlement result models produced by the settlement engine."""

from pydantic import BaseModel, Field


class SettlementTransaction(BaseModel):
    """A directed payment instruction: ``from`` pays ``to`` ``amount`` chips."""

    model_config = {"populate_by_name": True}

    from_player: str = Field(alias="from")
    to_player: str = Field(alias="to")
    amount: float


class PlayerResult(BaseModel):
    """A player's final position at game end."""

    id: str
    name: str
    buy_in: int
    final_chips: int
    balance: int


class SettlementResult(BaseModel):
    """Players sorted by balance (descending) plus the payments that zero them out."""

    players: list[PlayerResult] = Field(default_factory=list)
    transactions: list[SettlementTransaction] = Field(default_factory=list)
