"""Pydantic models for Poker Ledger."""

from pokerledger.models.common import (
    CENTRAL_BOX,
    GameState,
    LogEntryType,
    PlayerStatus,
)
from pokerledger.models.ledger import (
    CashOut,
    GameEndSummary,
    GameResumed,
    InitialBuyIn,
    LogEntry,
    PlayerBuyIn,
    SessionStarted,
)
from pokerledger.models.notification import Notification
from pokerledger.models.player import Player
from pokerledger.models.profile import PlayerProfile
from pokerledger.models.session import Session
from pokerledger.models.settlement import (
    PlayerResult,
    SettlementResult,
    SettlementTransaction,
)

__all__ = [
    # Enums and constants
    "CENTRAL_BOX",
    "GameState",
    "LogEntryType",
    "PlayerStatus",
    # Ledger entries
    "CashOut",
    "GameEndSummary",
    "GameResumed",
    "InitialBuyIn",
    "LogEntry",
    "PlayerBuyIn",
    "SessionStarted",
    # Aggregates
    "Notification",
    "Player",
    "PlayerProfile",
    "Session",
    # Settlement
    "PlayerResult",
    "SettlementResult",
    "SettlementTransaction",
]
