"""
SecondMe: Contextual Retrieval Engine
=====================================

Assembles bounded prompt context for a chat-automation bot: knowledge-graph
entities relevant to an incoming message plus the recent conversation with
the contact, degrading gracefully when dependencies are unavailable.

Quick Start:
    from secondme import (
        FalkorDBClient, RedisStore, VoyageEmbeddingClient,
        VectorGraphQueries, LegacyGraphQueries, HybridRetriever, HistoryCache,
        load_settings,
    )

    settings = load_settings()
    graph = FalkorDBClient(settings.falkordb)
    await graph.connect()
    store = RedisStore(settings.redis)

    retriever = HybridRetriever(
        embedder=VoyageEmbeddingClient(settings.embedding, cache=store),
        semantic_queries=VectorGraphQueries(graph, dimension=settings.embedding.dimension),
        legacy_queries=LegacyGraphQueries(graph, settings.semantic_rag.limits),
        config=settings.semantic_rag,
    )
    result = await retriever.retrieve_context("Did you talk to John?", "contact-42")

    history = HistoryCache(store, settings.history)
    recent = await history.get_recent_history("contact-42")

Components:
- config: dataclass settings, YAML loader
- storage: FalkorDBClient, RedisStore, MemoryStore
- embeddings: VoyageEmbeddingClient, CircuitBreaker
- retrieval: HybridRetriever, VectorGraphQueries, LegacyGraphQueries, reranker
- history: HistoryCache, keyword chunker
"""

__version__ = "0.1.0"
__author__ = "SecondMe Team"

from secondme.config import Settings, load_settings
from secondme.embeddings import CircuitBreaker, VoyageEmbeddingClient
from secondme.history import HistoryCache, HistoryResult
from secondme.logging_config import configure_logging
from secondme.retrieval import (
    ContactContext,
    HybridRetriever,
    LegacyGraphQueries,
    RetrievalMethod,
    RetrievalResult,
    VectorGraphQueries,
    format_context_for_prompt,
)
from secondme.storage import FalkorDBClient, MemoryStore, RedisStore

__all__ = [
    # Config
    "Settings",
    "load_settings",
    "configure_logging",
    # Storage
    "FalkorDBClient",
    "MemoryStore",
    "RedisStore",
    # Embeddings
    "CircuitBreaker",
    "VoyageEmbeddingClient",
    # Retrieval
    "ContactContext",
    "HybridRetriever",
    "LegacyGraphQueries",
    "RetrievalMethod",
    "RetrievalResult",
    "VectorGraphQueries",
    "format_context_for_prompt",
    # History
    "HistoryCache",
    "HistoryResult",
]
