"""Common enums and shared helpers for Poker Ledger models."""

from datetime import datetime, timezone
from enum import StrEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameState(StrEnum):
    """Session lifecycle states."""
    IN_PROGRESS = "in_progress"
    AWAITING_COUNTS = "awaiting_counts"
    FINISHED = "finished"


class PlayerStatus(StrEnum):
    """Whether a player row is tied to an authenticated identity."""
    GUEST = "guest"
    JOINED = "joined"


class LogEntryType(StrEnum):
    """Kinds of transaction log entries."""
    INITIAL_BUY_IN = "InitialBuyIn"
    PLAYER_BUY_IN = "PlayerBuyIn"
    CASH_OUT = "CashOut"
    GAME_END_SUMMARY = "GameEndSummary"
    SESSION_STARTED = "SessionStarted"
    GAME_RESUMED = "GameResumed"


# Source label for chips issued from (or returned to) the shared box.
CENTRAL_BOX = "Central Box"
