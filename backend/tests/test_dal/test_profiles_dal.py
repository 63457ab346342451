"""Tests for PlayerProfileDAL against mongomock."""

import pytest

from pokerledger.dal.profiles_dal import PlayerProfileDAL


@pytest.mark.asyncio
class TestPlayerProfileDAL:

    async def test_unknown_name(self, test_db):
        assert await PlayerProfileDAL(test_db).get("Nobody") is None

    async def test_names_match_regardless_of_case(self, test_db):
        dal = PlayerProfileDAL(test_db)
        await dal.set_promptpay_id("Alice", "0812345678")

        for spelling in ("alice", "ALICE", "  Alice "):
            profile = await dal.get(spelling)
            assert profile is not None
            assert profile.promptpay_id == "0812345678"
            assert profile.name == "Alice"

        assert await test_db.player_profiles.count_documents({}) == 1

    async def test_first_spelling_is_kept_for_display(self, test_db):
        dal = PlayerProfileDAL(test_db)
        await dal.toggle_quick_add("Bob")
        await dal.set_promptpay_id("BOB", "0899999999")

        profile = await dal.get("bob")
        assert profile.name == "Bob"
        assert profile.key == "bob"
        assert profile.is_quick_add is True
        assert profile.promptpay_id == "0899999999"

    async def test_toggle_flips_the_shared_profile(self, test_db):
        dal = PlayerProfileDAL(test_db)

        assert (await dal.toggle_quick_add("Carol")).is_quick_add is True
        assert await dal.list_quick_add() == ["Carol"]

        assert (await dal.toggle_quick_add("carol")).is_quick_add is False
        assert await dal.list_quick_add() == []

    async def test_quick_add_list_is_ordered_by_folded_name(self, test_db):
        dal = PlayerProfileDAL(test_db)
        for name in ("dave", "Bob", "alice"):
            await dal.toggle_quick_add(name)

        assert await dal.list_quick_add() == ["alice", "Bob", "dave"]
