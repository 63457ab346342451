"""Session business logic service.

One ``SessionService`` owns the in-memory aggregate of one active session
and exposes its commands: adding and joining players, buy-ins, cash-outs,
ending, settling and resuming the game. Local chip movements are saved
through a debounced autosave; game-state transitions are written at once
with a compare-and-set on ``game_state`` so two organizers cannot settle the
same game twice.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Optional

from pokerledger.auth.identity import Identity
from pokerledger.dal.profiles_dal import PlayerProfileDAL
from pokerledger.dal.sessions_dal import SessionDAL
from pokerledger.errors import (
    GameStateError,
    PlayerNotFound,
    StateConflict,
    ValidationError,
)
from pokerledger.models.common import GameState, LogEntryType, PlayerStatus
from pokerledger.models.ledger import LogEntry
from pokerledger.models.player import Player
from pokerledger.models.session import Session
from pokerledger.services.autosave import AutoSaver
from pokerledger.services.ledger import Ledger, validate_amount
from pokerledger.services.notification_service import (
    NotificationEvent,
    NotificationService,
)
from pokerledger.services.settlement_math import compute_settlement

logger = logging.getLogger("pokerledger.services.session")

# Fields owned by local mutations; game_state only changes through CAS.
_AUTOSAVE_FIELDS = ("players", "transaction_log", "chip_value", "final_calculations")

_MAX_NAME_LENGTH = 30

RESUME_MESSAGE = "Returned to game from summary."


class SessionService:
    """Command interface over a single session aggregate."""

    def __init__(
        self,
        session: Session,
        session_dal: SessionDAL,
        notification_service: NotificationService,
        profile_dal: Optional[PlayerProfileDAL] = None,
        save_delay: float = 1.0,
        poll_interval: float = 2.0,
    ) -> None:
        self._session = session
        self._dal = session_dal
        self._notifications = notification_service
        self._profiles = profile_dal
        self._poll_interval = poll_interval
        self._ledger = self._attach_ledger(session)
        self._autosaver = AutoSaver(
            self._save_snapshot, save_delay, name=f"session {session.session_id}"
        )
        self._lock = asyncio.Lock()
        self._unsubscribe = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def autosaver(self) -> AutoSaver:
        return self._autosaver

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to changes written by other clients."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._dal.subscribe(
            self.session_id,
            self._on_remote_change,
            interval=self._poll_interval,
            since_revision=self._session.revision,
        )

    async def close(self) -> None:
        """Stop live updates, write pending changes and finish deliveries."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._autosaver.flush()
        await self._notifications.drain()

    async def flush(self) -> bool:
        return await self._autosaver.flush()

    async def reload(self) -> Session:
        """Replace the local aggregate with the stored document."""
        stored = await self._dal.load(self.session_id)
        if stored is not None:
            self._autosaver.cancel()
            self._adopt(stored)
        return self._session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attach_ledger(self, session: Session) -> Ledger:
        ledger = Ledger(session)
        ledger.add_listener(self._on_entry)
        return ledger

    def _adopt(self, session: Session) -> None:
        self._session = session
        self._ledger = self._attach_ledger(session)

    def _on_entry(self, entry: LogEntry) -> None:
        self._notifications.dispatch(
            NotificationEvent.from_entry(
                entry, self.session_id, chip_value=self._session.chip_value
            )
        )

    def _changed(self) -> None:
        self._autosaver.schedule()

    async def _save_snapshot(self) -> None:
        session = self._session
        revision = await self._dal.save(
            self.session_id,
            session.mongo_fields(*_AUTOSAVE_FIELDS),
            merge=True,
        )
        # Only the copy that was written may claim the new revision.
        session.revision = revision

    async def _on_remote_change(self, stored: Session) -> None:
        async with self._lock:
            if stored.revision <= self._session.revision:
                return
            if self._autosaver.pending:
                # Local changes win on the next save (last write wins).
                logger.warning(
                    "Ignoring remote revision %d of session %s: local changes pending",
                    stored.revision, self.session_id,
                )
                return
            self._adopt(stored)
            logger.info(
                "Session %s refreshed to revision %d", self.session_id, stored.revision
            )

    def _require_state(self, expected: GameState, action: str) -> None:
        if self._session.game_state != expected:
            raise GameStateError(
                f"Cannot {action}: session is {self._session.game_state}"
            )

    def _require_player(self, player_id: str) -> Player:
        player = self._session.get_player(player_id)
        if player is None:
            raise PlayerNotFound(player_id)
        return player

    def _validate_new_name(self, name: str) -> str:
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Player name is required")
        if len(trimmed) > _MAX_NAME_LENGTH:
            raise ValidationError(
                f"Player name must be at most {_MAX_NAME_LENGTH} characters"
            )
        if self._session.find_player_by_name(trimmed) is not None:
            raise ValidationError(f"A player named {trimmed} is already in this session")
        return trimmed

    def _require_unowned(self, identity: Identity) -> None:
        if self._session.find_player_by_owner(identity.user_id) is not None:
            raise ValidationError("You have already joined this session")

    async def _lookup_promptpay(self, name: str) -> Optional[str]:
        if self._profiles is None:
            return None
        profile = await self._profiles.get(name)
        return profile.promptpay_id if profile else None

    async def _transition(
        self,
        expected: GameState,
        candidate: Session,
        fields: tuple[str, ...],
    ) -> None:
        """Write ``candidate`` if the stored state is still ``expected``, then adopt it."""
        await self._autosaver.flush()
        revision = await self._dal.compare_and_set_state(
            self.session_id,
            expected,
            candidate.game_state,
            candidate.mongo_fields(*fields),
        )
        if revision is None:
            await self.reload()
            raise StateConflict(
                f"Session {self.session_id} was changed by someone else "
                f"(now {self._session.game_state})"
            )
        # The candidate carried every autosave field, so nothing is left to save.
        self._autosaver.cancel()
        candidate.revision = revision
        self._adopt(candidate)

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    async def add_player(self, name: str, buy_in: int = 0) -> Player:
        """Add a guest player, optionally buying in from the box."""
        async with self._lock:
            self._require_state(GameState.IN_PROGRESS, "add players")
            trimmed = self._validate_new_name(name)
            amount = validate_amount(buy_in, allow_zero=True)

            player = Player(
                name=trimmed,
                status=PlayerStatus.GUEST,
                promptpay_id=await self._lookup_promptpay(trimmed),
            )
            self._session.players.append(player)
            self._ledger.record_initial_buy_in(player.id, amount)
            self._changed()

        logger.info("Player %s added to session %s", trimmed, self.session_id)
        return player

    async def join(self, identity: Identity, buy_in: int = 0) -> Player:
        """Add the caller as a ``joined`` player owned by their identity."""
        async with self._lock:
            self._require_state(GameState.IN_PROGRESS, "join")
            self._require_unowned(identity)
            trimmed = self._validate_new_name(identity.display_name)
            amount = validate_amount(buy_in, allow_zero=True)

            player = Player(
                name=trimmed,
                status=PlayerStatus.JOINED,
                owner_ref=identity.user_id,
                promptpay_id=await self._lookup_promptpay(trimmed),
            )
            self._session.players.append(player)
            self._ledger.record_initial_buy_in(player.id, amount)
            self._changed()

        logger.info("%s joined session %s", trimmed, self.session_id)
        return player

    async def claim_guest(self, player_id: str, identity: Identity, buy_in: int = 0) -> Player:
        """Link an existing guest row to the caller's identity."""
        async with self._lock:
            self._require_state(GameState.IN_PROGRESS, "join")
            player = self._require_player(player_id)
            if player.status != PlayerStatus.GUEST:
                raise ValidationError(f"{player.name} has already been claimed")
            self._require_unowned(identity)
            amount = validate_amount(buy_in, allow_zero=True)

            player.status = PlayerStatus.JOINED
            player.owner_ref = identity.user_id
            self._ledger.record_initial_buy_in(player.id, amount)
            self._changed()

        logger.info("%s claimed guest %s in session %s", identity.user_id, player.name, self.session_id)
        return player

    async def update_player(self, player_id: str, promptpay_id: str) -> Player:
        """Set a player's PromptPay id; it is remembered for future sessions."""
        promptpay_id = (promptpay_id or "").strip()
        if not promptpay_id:
            raise ValidationError("PromptPay ID is required")
        async with self._lock:
            player = self._require_player(player_id)
            player.promptpay_id = promptpay_id
            self._changed()
        if self._profiles is not None:
            await self._profiles.set_promptpay_id(player.name, promptpay_id)
        return player

    # ------------------------------------------------------------------
    # Chip movements
    # ------------------------------------------------------------------

    async def buy_in(self, buyer_id: str, amount: int, source: Optional[str] = None) -> Session:
        async with self._lock:
            self._ledger.record_player_buy_in(buyer_id, amount, source)
            self._changed()
            return self._session

    async def cash_out(self, player_id: str, amount: int) -> Session:
        async with self._lock:
            self._ledger.record_cash_out(player_id, amount)
            self._changed()
            return self._session

    async def set_chip_value(self, chip_value: float) -> Session:
        if isinstance(chip_value, bool) or not isinstance(chip_value, (int, float)):
            raise ValidationError("Chip value must be a number")
        if chip_value <= 0:
            raise ValidationError("Chip value must be greater than zero")
        async with self._lock:
            self._session.chip_value = float(chip_value)
            self._changed()
            return self._session

    # ------------------------------------------------------------------
    # Game state transitions
    # ------------------------------------------------------------------

    async def end_game(self) -> Session:
        """Stop play and wait for final chip counts."""
        async with self._lock:
            self._require_state(GameState.IN_PROGRESS, "end the game")
            candidate = self._session.model_copy(deep=True)
            candidate.game_state = GameState.AWAITING_COUNTS
            await self._transition(GameState.IN_PROGRESS, candidate, _AUTOSAVE_FIELDS)

        logger.info("Session %s awaiting final counts", self.session_id)
        return self._session

    async def settle(self, final_counts: Mapping[str, int]) -> Session:
        """Run the settlement engine and finish the game.

        Raises:
            GameStateError: The session is not awaiting counts.
            ValidationError: A chip count is invalid or names an unknown player.
            BalanceMismatch: Totals do not reconcile; nothing is changed.
            StateConflict: Another writer moved the session first.
        """
        async with self._lock:
            self._require_state(GameState.AWAITING_COUNTS, "settle")
            unknown = set(final_counts) - {p.id for p in self._session.players}
            if unknown:
                raise ValidationError(f"Unknown players in final counts: {sorted(unknown)}")

            result = compute_settlement(self._session.players, final_counts)

            candidate = self._session.model_copy(deep=True)
            final_chips = {r.id: r.final_chips for r in result.players}
            for player in candidate.players:
                player.final_chips = final_chips[player.id]
            candidate.final_calculations = result
            candidate.game_state = GameState.FINISHED
            summary = Ledger(candidate).record_game_end(result)

            await self._transition(GameState.AWAITING_COUNTS, candidate, _AUTOSAVE_FIELDS)
            self._on_entry(summary)

        logger.info(
            "Session %s settled with %d transaction(s)",
            self.session_id, len(result.transactions),
        )
        return self._session

    async def resume(self) -> Session:
        """Go back to play from the summary; the log and buy-ins are kept."""
        async with self._lock:
            self._require_state(GameState.FINISHED, "resume")
            candidate = self._session.model_copy(deep=True)
            candidate.final_calculations = None
            candidate.game_state = GameState.IN_PROGRESS
            for player in candidate.players:
                player.final_chips = None
            resumed = Ledger(candidate).append_lifecycle_event(
                LogEntryType.GAME_RESUMED, RESUME_MESSAGE
            )

            await self._transition(GameState.FINISHED, candidate, _AUTOSAVE_FIELDS)
            self._on_entry(resumed)

        logger.info("Session %s resumed", self.session_id)
        return self._session
