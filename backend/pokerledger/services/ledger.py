"""Session transaction ledger.

Records every chip movement as an immutable log entry and keeps each
player's net buy-in in step with the log. All methods are synchronous and
validate before mutating: a rejected call leaves the session untouched.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Optional

from pokerledger.errors import GameStateError, PlayerNotFound, ValidationError
from pokerledger.models.common import CENTRAL_BOX, GameState, LogEntryType
from pokerledger.models.ledger import (
    CashOut,
    GameEndSummary,
    GameResumed,
    InitialBuyIn,
    LogEntry,
    PlayerBuyIn,
    SessionStarted,
)
from pokerledger.models.player import Player
from pokerledger.models.session import Session
from pokerledger.models.settlement import SettlementResult

logger = logging.getLogger("pokerledger.services.ledger")

Listener = Callable[[LogEntry], None]

_LIFECYCLE_TYPES = {
    LogEntryType.SESSION_STARTED: SessionStarted,
    LogEntryType.GAME_RESUMED: GameResumed,
}


@dataclass(frozen=True)
class LedgerTotals:
    """Chip flows between the central box and the players."""

    issued_from_box: int
    cashed_out: int

    @property
    def outstanding(self) -> int:
        return self.issued_from_box - self.cashed_out


def validate_amount(amount: object, allow_zero: bool = False) -> int:
    """Return ``amount`` if it is a usable chip amount, else raise ValidationError."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be a whole number of chips")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(
            "Amount cannot be negative" if allow_zero else "Amount must be greater than zero"
        )
    return amount


def compute_totals(log: Iterable[LogEntry]) -> LedgerTotals:
    issued = 0
    cashed_out = 0
    for entry in log:
        if isinstance(entry, InitialBuyIn):
            issued += entry.amount
        elif isinstance(entry, PlayerBuyIn) and entry.seller_id is None:
            issued += entry.amount
        elif isinstance(entry, CashOut):
            cashed_out += entry.amount
    return LedgerTotals(issued_from_box=issued, cashed_out=cashed_out)


def replay_buy_ins(log: Iterable[LogEntry]) -> dict[str, int]:
    """Derive every player's net buy-in from the log alone, keyed by player id."""
    buy_ins: dict[str, int] = {}
    for entry in log:
        if isinstance(entry, InitialBuyIn):
            buy_ins[entry.player_id] = buy_ins.get(entry.player_id, 0) + entry.amount
        elif isinstance(entry, PlayerBuyIn):
            buy_ins[entry.player_id] = buy_ins.get(entry.player_id, 0) + entry.amount
            if entry.seller_id is not None:
                buy_ins[entry.seller_id] = buy_ins.get(entry.seller_id, 0) - entry.amount
        elif isinstance(entry, CashOut):
            buy_ins[entry.player_id] = buy_ins.get(entry.player_id, 0) - entry.amount
    return buy_ins


class Ledger:
    """Append-only ledger over a Session aggregate."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._listeners: list[Listener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._session.transaction_log)

    def add_listener(self, listener: Listener) -> None:
        """Register a hook called after every append."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_in_progress(self, action: str) -> None:
        if self._session.game_state != GameState.IN_PROGRESS:
            raise GameStateError(
                f"Cannot {action}: session is {self._session.game_state}"
            )

    def _require_player(self, player_id: str) -> Player:
        player = self._session.get_player(player_id)
        if player is None:
            raise PlayerNotFound(player_id)
        return player

    def _append(self, entry: LogEntry) -> LogEntry:
        self._session.transaction_log.append(entry)
        for listener in self._listeners:
            try:
                listener(entry)
            except Exception:
                # Hooks are downstream consumers; the entry stays recorded.
                logger.exception("Ledger listener failed for entry %s", entry.id)
        return entry

    # ------------------------------------------------------------------
    # Chip movements
    # ------------------------------------------------------------------

    def record_initial_buy_in(self, player_id: str, amount: int) -> InitialBuyIn:
        """A player enters the game with ``amount`` chips from the box (0 allowed)."""
        amount = validate_amount(amount, allow_zero=True)
        self._require_in_progress("buy in")
        player = self._require_player(player_id)

        player.buy_in += amount
        entry = InitialBuyIn(
            seq=self._session.next_seq(),
            player_id=player.id,
            player=player.name,
            amount=amount,
        )
        logger.info("Initial buy-in: %s +%d", player.name, amount)
        return self._append(entry)

    def record_player_buy_in(
        self,
        buyer_id: str,
        amount: int,
        source: Optional[str] = None,
    ) -> PlayerBuyIn:
        """Buyer gets ``amount`` more chips.

        ``source`` is either the central box (``None`` or ``CENTRAL_BOX``) or
        the id of the player selling the chips, whose buy-in drops by the
        same amount.
        """
        amount = validate_amount(amount)
        self._require_in_progress("buy in")
        buyer = self._require_player(buyer_id)

        seller: Optional[Player] = None
        if source is not None and source != CENTRAL_BOX:
            seller = self._session.get_player(source)
            if seller is None:
                raise ValidationError(f"Unknown chip source: {source}")
            if seller.id == buyer.id:
                raise ValidationError("A player cannot buy chips from themselves")

        buyer.buy_in += amount
        if seller is not None:
            seller.buy_in -= amount
            entry = PlayerBuyIn(
                seq=self._session.next_seq(),
                player_id=buyer.id,
                player=buyer.name,
                amount=amount,
                source=f"from {seller.name}",
                seller_id=seller.id,
            )
        else:
            entry = PlayerBuyIn(
                seq=self._session.next_seq(),
                player_id=buyer.id,
                player=buyer.name,
                amount=amount,
            )
        logger.info("Buy-in: %s +%d (%s)", buyer.name, amount, entry.source)
        return self._append(entry)

    def record_cash_out(self, player_id: str, amount: int) -> CashOut:
        """Player returns ``amount`` chips to the box."""
        amount = validate_amount(amount)
        self._require_in_progress("cash out")
        player = self._require_player(player_id)
        if amount > player.buy_in:
            raise ValidationError(
                f"Cannot cash out {amount} chips; {player.name} has a net buy-in of {player.buy_in}"
            )

        player.buy_in -= amount
        entry = CashOut(
            seq=self._session.next_seq(),
            player_id=player.id,
            player=player.name,
            amount=amount,
        )
        logger.info("Cash-out: %s -%d", player.name, amount)
        return self._append(entry)

    # ------------------------------------------------------------------
    # Non-balance entries
    # ------------------------------------------------------------------

    def append_lifecycle_event(self, entry_type: LogEntryType, message: str) -> LogEntry:
        """Record a session start or resume; no balance effect."""
        model = _LIFECYCLE_TYPES.get(entry_type)
        if model is None:
            raise ValidationError(f"{entry_type} is not a lifecycle event")
        if not message or not message.strip():
            raise ValidationError("Lifecycle event message is required")
        entry = model(seq=self._session.next_seq(), message=message)
        return self._append(entry)

    def record_game_end(self, result: SettlementResult) -> GameEndSummary:
        entry = GameEndSummary(seq=self._session.next_seq(), summary=result)
        return self._append(entry)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def totals(self) -> LedgerTotals:
        return compute_totals(self._session.transaction_log)

    def is_reconciled(self) -> bool:
        """True when player buy-ins add up to chips still out of the box."""
        total_buy_in = sum(p.buy_in for p in self._session.players)
        return total_buy_in == self.totals().outstanding
