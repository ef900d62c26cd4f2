"""
Test HistoryCache
=================

History loading over an in-process sorted-set store.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from secondme.config import HistoryConfig, HistoryRetrievalConfig, HistoryStorageConfig, KeywordChunkingConfig
from secondme.errors import ParseError
from secondme.history import ConversationMessage, HistoryCache, HistoryMethod, StoredMessage

NOW_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


@pytest.fixture
def history_config():
    return HistoryConfig(
        enabled=True,
        storage=HistoryStorageConfig(key_prefix="HISTORY:"),
        retrieval=HistoryRetrievalConfig(
            max_tokens=1500, min_messages=5, max_messages=40, max_age_hours=24, max_message_length=500
        ),
        chunking=KeywordChunkingConfig(gap_minutes=10, min_keyword_overlap=0.25, min_word_length=4),
    )


@pytest.fixture
def history(memory_store, history_config):
    return HistoryCache(memory_store, history_config, clock=lambda: NOW_MS / 1000)


@pytest.fixture
def seed(memory_store, stored_message):
    """Add messages for a contact: (id, content, timestamp[, role])."""
    async def _seed(contact_id, *messages):
        mapping = {}
        for entry in messages:
            msg_id, content, timestamp, *rest = entry
            role = rest[0] if rest else "user"
            source_type = "incoming" if role == "user" else "outgoing"
            mapping[stored_message(msg_id, content, timestamp, role, source_type)] = timestamp
        await memory_store.zadd(f"HISTORY:{contact_id}", mapping)
    return _seed


class TestStoredMessage:
    """Test strict parsing of stored members."""

    def test_round_trip_uses_type_alias(self, stored_message):
        message = StoredMessage.from_json(stored_message("m1", "hi", NOW_MS))

        assert message.source_type == "incoming"
        assert json.loads(message.to_json())["type"] == "incoming"

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        json.dumps({"id": "m1", "role": "user", "content": "hi", "timestamp": NOW_MS}),
        json.dumps({"id": "m1", "role": "bot", "content": "hi", "timestamp": NOW_MS, "type": "incoming"}),
        json.dumps({"id": 1, "role": "user", "content": "hi", "timestamp": NOW_MS, "type": "incoming"}),
        json.dumps({"id": "m1", "role": "user", "content": "hi", "timestamp": "yesterday", "type": "incoming"}),
    ])
    def test_invalid_shapes_rejected(self, raw):
        with pytest.raises(ParseError):
            StoredMessage.from_json(raw)


class TestGetRecentHistory:
    """Test get_recent_history()."""

    @pytest.mark.asyncio
    async def test_messages_in_chronological_order(self, history, seed):
        await seed(
            "c1",
            ("m1", "Are we still climbing tonight?", NOW_MS - 3 * MINUTE_MS),
            ("m2", "Yes, climbing gym at seven", NOW_MS - 2 * MINUTE_MS, "assistant"),
            ("m3", "Great, bring the climbing rope", NOW_MS - 1 * MINUTE_MS),
        )

        result = await history.get_recent_history("c1")

        assert result.method is HistoryMethod.CHUNKED
        assert result.messages == [
            ConversationMessage("user", "Are we still climbing tonight?"),
            ConversationMessage("assistant", "Yes, climbing gym at seven"),
            ConversationMessage("user", "Great, bring the climbing rope"),
        ]
        assert result.message_count == 3
        assert result.token_estimate == (8 + 10) + (7 + 10) + (8 + 10)

    @pytest.mark.asyncio
    async def test_no_history(self, history):
        result = await history.get_recent_history("nobody")

        assert result.messages == []
        assert result.token_estimate == 0
        assert result.method is HistoryMethod.CHUNKED

    @pytest.mark.asyncio
    async def test_disabled(self, memory_store, history_config, seed):
        history_config.enabled = False
        await seed("c1", ("m1", "hello there", NOW_MS))

        result = await HistoryCache(memory_store, history_config).get_recent_history("c1")

        assert result.method is HistoryMethod.DISABLED
        assert result.messages == []

    @pytest.mark.asyncio
    async def test_invalid_entries_skipped(self, history, memory_store, seed):
        await seed("c1", ("m1", "valid message", NOW_MS - MINUTE_MS))
        await memory_store.zadd("HISTORY:c1", {"{broken": NOW_MS, json.dumps({"id": "x"}): NOW_MS})

        result = await history.get_recent_history("c1")

        assert [m.content for m in result.messages] == ["valid message"]

    @pytest.mark.asyncio
    async def test_old_messages_filtered(self, history, seed):
        await seed(
            "c1",
            ("m1", "from last week", NOW_MS - 7 * 24 * 60 * MINUTE_MS),
            ("m2", "from a minute ago", NOW_MS - MINUTE_MS),
        )

        result = await history.get_recent_history("c1")

        assert [m.content for m in result.messages] == ["from a minute ago"]

    @pytest.mark.asyncio
    async def test_loads_at_most_max_messages(self, memory_store, history_config, seed):
        history_config.retrieval = HistoryRetrievalConfig(
            max_tokens=10_000, min_messages=1, max_messages=3, max_age_hours=24, max_message_length=500
        )
        await seed("c1", *[(f"m{i}", f"message {i}", NOW_MS - (10 - i) * 1000) for i in range(10)])

        result = await HistoryCache(memory_store, history_config, clock=lambda: NOW_MS / 1000).get_recent_history("c1")

        assert [m.content for m in result.messages] == ["message 7", "message 8", "message 9"]

    @pytest.mark.asyncio
    async def test_store_error_returns_empty(self, history_config):
        store = MagicMock()
        store.zrevrange = AsyncMock(side_effect=ConnectionError("redis down"))

        result = await HistoryCache(store, history_config).get_recent_history("c1")

        assert result.messages == []
        assert result.method is HistoryMethod.CHUNKED

    @pytest.mark.asyncio
    async def test_reads_contact_key(self, history_config):
        store = MagicMock()
        store.zrevrange = AsyncMock(return_value=[])

        await HistoryCache(store, history_config).get_recent_history("c42")

        store.zrevrange.assert_awaited_once_with("HISTORY:c42", 0, 39)


class TestRawHistoryAndCount:
    """Test raw access helpers."""

    @pytest.mark.asyncio
    async def test_raw_history_newest_first(self, history, seed):
        await seed("c1", ("m1", "first", NOW_MS - 2000), ("m2", "second", NOW_MS - 1000))

        raw = await history.get_raw_history("c1")

        assert [m.id for m in raw] == ["m2", "m1"]

    @pytest.mark.asyncio
    async def test_raw_history_limit(self, history, seed):
        await seed("c1", *[(f"m{i}", "text", NOW_MS - i) for i in range(5)])

        assert len(await history.get_raw_history("c1", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_count_and_has_history(self, history, seed):
        assert await history.has_history("c1") is False

        await seed("c1", ("m1", "first", NOW_MS), ("m2", "second", NOW_MS + 1))

        assert await history.get_history_count("c1") == 2
        assert await history.has_history("c1") is True

    @pytest.mark.asyncio
    async def test_count_error_is_zero(self, history_config):
        store = MagicMock()
        store.zcard = AsyncMock(side_effect=ConnectionError("redis down"))

        assert await HistoryCache(store, history_config).get_history_count("c1") == 0
