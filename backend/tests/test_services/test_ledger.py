"""Unit tests for the transaction ledger (synchronous, no database)."""

import random

import pytest

from pokerledger.errors import GameStateError, PlayerNotFound, ValidationError
from pokerledger.models.common import CENTRAL_BOX, GameState, LogEntryType
from pokerledger.models.ledger import (
    CashOut,
    GameResumed,
    InitialBuyIn,
    PlayerBuyIn,
    SessionStarted,
)
from pokerledger.models.player import Player
from pokerledger.services.ledger import Ledger, compute_totals, replay_buy_ins


@pytest.fixture
def ledger(session):
    return Ledger(session)


def _seat(ledger: Ledger, name: str, buy_in: int = 0) -> Player:
    player = Player(name=name)
    ledger.session.players.append(player)
    ledger.record_initial_buy_in(player.id, buy_in)
    return player


# ---------------------------------------------------------------------------
# Buy-ins
# ---------------------------------------------------------------------------

class TestBuyIns:

    def test_initial_buy_in_records_box_entry(self, ledger):
        alice = _seat(ledger, "Alice", 400)

        entry = ledger.entries[-1]
        assert isinstance(entry, InitialBuyIn)
        assert entry.player == "Alice"
        assert entry.player_id == alice.id
        assert entry.amount == 400
        assert entry.source == CENTRAL_BOX
        assert alice.buy_in == 400

    def test_zero_initial_buy_in_still_logged(self, ledger):
        bob = _seat(ledger, "Bob", 0)

        assert bob.buy_in == 0
        assert len(ledger.entries) == 1
        assert ledger.entries[0].amount == 0

    def test_box_buy_in_adds_to_buyer(self, ledger):
        alice = _seat(ledger, "Alice", 400)

        entry = ledger.record_player_buy_in(alice.id, 200)

        assert alice.buy_in == 600
        assert entry.source == CENTRAL_BOX
        assert entry.seller_id is None

    def test_explicit_central_box_source(self, ledger):
        alice = _seat(ledger, "Alice", 0)

        entry = ledger.record_player_buy_in(alice.id, 50, CENTRAL_BOX)

        assert entry.seller_id is None
        assert alice.buy_in == 50

    def test_peer_buy_in_moves_buy_in_between_players(self, ledger):
        a = _seat(ledger, "A", 400)
        b = _seat(ledger, "B", 0)

        entry = ledger.record_player_buy_in(b.id, 100, a.id)

        assert (a.buy_in, b.buy_in) == (300, 100)
        assert isinstance(entry, PlayerBuyIn)
        assert entry.player == "B"
        assert entry.source == "from A"
        assert entry.seller_id == a.id
        assert ledger.totals().issued_from_box == 400

    def test_seller_may_go_negative(self, ledger):
        a = _seat(ledger, "A", 0)
        b = _seat(ledger, "B", 0)

        ledger.record_player_buy_in(b.id, 100, a.id)

        assert a.buy_in == -100
        assert ledger.is_reconciled()

    def test_cannot_buy_from_self(self, ledger):
        a = _seat(ledger, "A", 100)

        with pytest.raises(ValidationError):
            ledger.record_player_buy_in(a.id, 50, a.id)
        assert a.buy_in == 100

    def test_unknown_source_rejected(self, ledger):
        a = _seat(ledger, "A", 100)

        with pytest.raises(ValidationError):
            ledger.record_player_buy_in(a.id, 50, "nobody")
        assert len(ledger.entries) == 1

    def test_unknown_buyer(self, ledger):
        with pytest.raises(PlayerNotFound) as exc_info:
            ledger.record_player_buy_in("ghost", 50)
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("amount", [0, -10, 12.5, "100", True, None])
    def test_invalid_amounts_rejected(self, ledger, amount):
        a = _seat(ledger, "A", 100)

        with pytest.raises(ValidationError):
            ledger.record_player_buy_in(a.id, amount)
        assert a.buy_in == 100
        assert len(ledger.entries) == 1


# ---------------------------------------------------------------------------
# Cash-outs
# ---------------------------------------------------------------------------

class TestCashOut:

    def test_cash_out_returns_chips_to_box(self, ledger):
        a = _seat(ledger, "A", 400)

        entry = ledger.record_cash_out(a.id, 150)

        assert isinstance(entry, CashOut)
        assert a.buy_in == 250
        totals = ledger.totals()
        assert (totals.issued_from_box, totals.cashed_out, totals.outstanding) == (400, 150, 250)

    def test_full_cash_out(self, ledger):
        a = _seat(ledger, "A", 400)

        ledger.record_cash_out(a.id, 400)

        assert a.buy_in == 0

    def test_cash_out_more_than_buy_in_rejected(self, ledger):
        a = _seat(ledger, "A", 100)

        with pytest.raises(ValidationError):
            ledger.record_cash_out(a.id, 101)
        assert a.buy_in == 100
        assert len(ledger.entries) == 1

    def test_zero_cash_out_rejected(self, ledger):
        a = _seat(ledger, "A", 100)

        with pytest.raises(ValidationError):
            ledger.record_cash_out(a.id, 0)


# ---------------------------------------------------------------------------
# Game state guard
# ---------------------------------------------------------------------------

class TestStateGuard:

    @pytest.mark.parametrize("state", [GameState.AWAITING_COUNTS, GameState.FINISHED])
    def test_chip_movements_need_in_progress(self, ledger, state):
        a = _seat(ledger, "A", 100)
        ledger.session.game_state = state

        with pytest.raises(GameStateError) as exc_info:
            ledger.record_player_buy_in(a.id, 50)
        assert exc_info.value.status_code == 409
        with pytest.raises(GameStateError):
            ledger.record_cash_out(a.id, 50)
        assert a.buy_in == 100


# ---------------------------------------------------------------------------
# Lifecycle entries and listeners
# ---------------------------------------------------------------------------

class TestLifecycleAndListeners:

    def test_lifecycle_events_have_no_balance_effect(self, ledger):
        a = _seat(ledger, "A", 100)

        started = ledger.append_lifecycle_event(LogEntryType.SESSION_STARTED, "Session started.")
        resumed = ledger.append_lifecycle_event(LogEntryType.GAME_RESUMED, "Back to it.")

        assert isinstance(started, SessionStarted)
        assert isinstance(resumed, GameResumed)
        assert a.buy_in == 100
        assert ledger.totals().outstanding == 100

    def test_chip_entry_type_is_not_a_lifecycle_event(self, ledger):
        with pytest.raises(ValidationError):
            ledger.append_lifecycle_event(LogEntryType.CASH_OUT, "nope")

    def test_blank_lifecycle_message_rejected(self, ledger):
        with pytest.raises(ValidationError):
            ledger.append_lifecycle_event(LogEntryType.SESSION_STARTED, "  ")

    def test_seq_increases(self, ledger):
        a = _seat(ledger, "A", 100)
        ledger.record_player_buy_in(a.id, 10)
        ledger.record_cash_out(a.id, 20)

        assert [e.seq for e in ledger.entries] == [1, 2, 3]

    def test_listener_sees_every_entry(self, ledger):
        seen = []
        ledger.add_listener(seen.append)

        a = _seat(ledger, "A", 100)
        ledger.record_cash_out(a.id, 40)

        assert [e.type for e in seen] == ["InitialBuyIn", "CashOut"]

    def test_failing_listener_does_not_roll_back(self, ledger):
        def broken(entry):
            raise RuntimeError("webhook down")

        ledger.add_listener(broken)
        a = _seat(ledger, "A", 100)

        ledger.record_player_buy_in(a.id, 50)

        assert a.buy_in == 150
        assert len(ledger.entries) == 2


# ---------------------------------------------------------------------------
# Conservation
# ---------------------------------------------------------------------------

class TestConservation:

    def test_replay_matches_running_buy_ins(self, ledger):
        a = _seat(ledger, "A", 400)
        b = _seat(ledger, "B", 200)
        ledger.record_player_buy_in(b.id, 100, a.id)
        ledger.record_cash_out(a.id, 50)

        assert replay_buy_ins(ledger.entries) == {a.id: 250, b.id: 300}

    @pytest.mark.parametrize("seed", range(10))
    def test_random_operations_stay_reconciled(self, session, seed):
        rng = random.Random(seed)
        ledger = Ledger(session)
        players = [_seat(ledger, f"P{i}", rng.randrange(0, 500, 50)) for i in range(4)]

        for _ in range(40):
            buyer, other = rng.sample(players, 2)
            op = rng.choice(["box", "peer", "cash_out", "bad"])
            try:
                if op == "box":
                    ledger.record_player_buy_in(buyer.id, rng.randint(1, 300))
                elif op == "peer":
                    ledger.record_player_buy_in(buyer.id, rng.randint(1, 300), other.id)
                elif op == "cash_out":
                    ledger.record_cash_out(buyer.id, rng.randint(1, 300))
                else:
                    ledger.record_player_buy_in(buyer.id, -rng.randint(1, 300))
            except ValidationError:
                pass

            assert ledger.is_reconciled()
            replayed = replay_buy_ins(ledger.entries)
            assert all(replayed.get(p.id, 0) == p.buy_in for p in players)

        totals = compute_totals(ledger.entries)
        assert sum(p.buy_in for p in players) == totals.outstanding
