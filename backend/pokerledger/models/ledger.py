"""Transaction log entries.

Every variant carries only the fields relevant to it. ``LogEntry`` is a
tagged union discriminated on ``type`` so a persisted log loads back into
the right variant.
"""

import uuid
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from pokerledger.models.common import CENTRAL_BOX, utcnow
from pokerledger.models.settlement import SettlementResult


def _entry_id() -> str:
    return uuid.uuid4().hex


class _BaseEntry(BaseModel):
    id: str = Field(default_factory=_entry_id)
    seq: int
    timestamp: datetime = Field(default_factory=utcnow)


class InitialBuyIn(_BaseEntry):
    type: Literal["InitialBuyIn"] = "InitialBuyIn"
    player_id: str
    player: str
    amount: int
    source: str = CENTRAL_BOX


class PlayerBuyIn(_BaseEntry):
    type: Literal["PlayerBuyIn"] = "PlayerBuyIn"
    player_id: str
    player: str
    amount: int
    source: str = CENTRAL_BOX
    # Set when the chips were bought from another player rather than the box.
    seller_id: Optional[str] = None


class CashOut(_BaseEntry):
    type: Literal["CashOut"] = "CashOut"
    player_id: str
    player: str
    amount: int


class GameEndSummary(_BaseEntry):
    type: Literal["GameEndSummary"] = "GameEndSummary"
    summary: SettlementResult


class SessionStarted(_BaseEntry):
    type: Literal["SessionStarted"] = "SessionStarted"
    message: str


class GameResumed(_BaseEntry):
    type: Literal["GameResumed"] = "GameResumed"
    message: str


LogEntry = Annotated[
    Union[
        InitialBuyIn,
        PlayerBuyIn,
        CashOut,
        GameEndSummary,
        SessionStarted,
        GameResumed,
    ],
    Field(discriminator="type"),
]

_log_entry_adapter = TypeAdapter(LogEntry)


def parse_log_entry(data: dict) -> LogEntry:
    """Validate a raw document into the matching log entry variant."""
    return _log_entry_adapter.validate_python(data)
