"""Tests for lifetime stats aggregation and payment QR codes."""

import pytest

from pokerledger.dal.sessions_dal import SessionDAL
from pokerledger.models.common import GameState
from pokerledger.models.session import Session
from pokerledger.models.settlement import PlayerResult, SettlementResult
from pokerledger.services.qr_service import generate_payment_qr, payment_url
from pokerledger.services.stats_service import StatsService


def _finished(session_id: str, *rows: tuple[str, int, int]) -> Session:
    results = [
        PlayerResult(id=name, name=name, buy_in=buy_in, final_chips=final, balance=final - buy_in)
        for name, buy_in, final in rows
    ]
    return Session(
        session_id=session_id,
        date_prefix=session_id.split("-")[0],
        game_state=GameState.FINISHED,
        final_calculations=SettlementResult(players=results),
    )


@pytest.mark.asyncio
class TestStatsService:

    async def test_aggregates_finished_sessions_by_name(self, test_db):
        dal = SessionDAL(test_db)
        await dal.create(_finished("20250301-1", ("Alice", 400, 700), ("Bob", 400, 100)))
        await dal.create(_finished("20250308-1", ("alice", 400, 300), ("Bob", 200, 300)))
        # Unfinished games are ignored.
        await dal.create(Session(session_id="20250314-1", date_prefix="20250314"))

        stats = await StatsService(dal).get_player_stats()

        assert [s["name"] for s in stats] == ["Alice", "Bob"]
        alice, bob = stats
        assert alice == {
            "name": "Alice",
            "sessions_played": 2,
            "total_buy_in": 800,
            "total_balance": 200,
            "biggest_win": 300,
            "biggest_loss": -100,
        }
        assert bob["total_balance"] == -200
        assert bob["biggest_win"] == 100
        assert bob["biggest_loss"] == -300

    async def test_no_sessions(self, test_db):
        assert await StatsService(SessionDAL(test_db)).get_player_stats() == []


class TestPaymentQr:

    def test_payment_url(self):
        assert (
            payment_url("0812345678", 100, "https://promptpay.io/")
            == "https://promptpay.io/0812345678/100.00"
        )

    def test_payment_url_formats_two_decimals(self):
        assert payment_url("0812345678", 12.5, "https://pay.example") == (
            "https://pay.example/0812345678/12.50"
        )

    def test_generates_png(self):
        png = generate_payment_qr("0812345678", 100.0)
        assert png.startswith(b"\x89PNG")
