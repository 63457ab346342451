"""Typed errors raised by the ledger, the settlement engine and the services.

Caller-facing errors are ``HTTPException`` subclasses so services can raise
them directly and FastAPI renders them with the right status code.
Collaborator failures (persistence, notifications) are plain exceptions that
are logged where they happen and never reach the caller.
"""

from typing import Any

from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Base class for caller-facing ledger errors."""

    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any) -> None:
        super().__init__(status_code=self.default_status, detail=detail)


class ValidationError(LedgerError):
    """Invalid input; nothing was mutated."""


class PlayerNotFound(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found in this session")


class SessionNotFound(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class GameStateError(LedgerError):
    """The operation is not allowed in the session's current game state."""

    default_status = status.HTTP_409_CONFLICT


class StateConflict(GameStateError):
    """A concurrent writer changed ``game_state`` first."""


class BalanceMismatch(LedgerError):
    """Final chip counts do not add up to the total net buy-in."""

    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, total_final_chips: float, total_buy_in: float) -> None:
        self.total_final_chips = total_final_chips
        self.total_buy_in = total_buy_in
        super().__init__(
            {
                "message": (
                    f"Balance mismatch! Total final chips ({total_final_chips}) "
                    f"do not equal total net buy-ins ({total_buy_in}). "
                    "Please double-check chip counts."
                ),
                "total_final_chips": total_final_chips,
                "total_buy_in": total_buy_in,
            }
        )


class PersistenceFailure(Exception):
    """Writing the session document to the store failed."""


class NotificationFailure(Exception):
    """Delivering a ledger event to a notifier failed."""
