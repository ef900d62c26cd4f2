"""
SecondMe Test Configuration
===========================

Shared fixtures for all tests. Tests are hermetic: FalkorDB, Redis and the
Voyage API are replaced by mocks or in-process stores.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fake monotonic clock."""
    return FakeClock()


# Mock FalkorDB client for unit tests
@pytest.fixture
def mock_falkordb():
    """Mock FalkorDB client for unit tests."""
    client = MagicMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.query = AsyncMock(return_value=[])
    return client


@pytest.fixture
def memory_store(clock):
    """In-process key-value store driven by the fake clock."""
    from secondme.storage.cache import MemoryStore

    return MemoryStore(clock=clock)


@pytest.fixture
def embedding_config():
    """Small-dimension embedding config with a credential."""
    from secondme.config import EmbeddingConfig

    return EmbeddingConfig(
        api_key="test-key",
        dimension=4,
        cache_ttl_seconds=300,
        breaker_threshold=5,
        breaker_cooldown_seconds=60,
    )


def _voyage_payload(vectors, tokens: int = 7):
    return {
        "data": [
            {"index": i, "embedding": vector}
            for i, vector in enumerate(vectors)
        ],
        "usage": {"total_tokens": tokens},
    }


def _stored_message_json(
    msg_id: str,
    content: str,
    timestamp: float,
    role: str = "user",
    source_type: str = "incoming",
) -> str:
    return json.dumps({
        "id": msg_id,
        "role": role,
        "content": content,
        "timestamp": timestamp,
        "type": source_type,
    })


@pytest.fixture
def voyage_payload():
    """Builder for the body of a successful Voyage embeddings response."""
    return _voyage_payload


@pytest.fixture
def stored_message():
    """Builder for a history sorted-set member as written by ingestion."""
    return _stored_message_json
