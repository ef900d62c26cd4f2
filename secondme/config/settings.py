"""
Retrieval Settings
==================

Dataclass configuration for the contextual retrieval engine.

Every field has an environment-variable default, and every value can be
overridden explicitly or through a YAML file (see ``secondme.config.loader``).

Usage:
    from secondme.config import SemanticRagConfig, HistoryConfig

    rag = SemanticRagConfig()                       # env vars / defaults
    rag = SemanticRagConfig(enabled=True, fallback_threshold=5)

    history = HistoryConfig()
    history.history_key("contact-42")               # "HISTORY:contact-42"

Environment Variables:
    GRAPH_CONTEXT_ENABLED: Master switch for graph context (default: true)
    SEMANTIC_RAG_ENABLED: Enable vector retrieval (default: false)
    SEMANTIC_RAG_FALLBACK_THRESHOLD: Min entities before hybrid fallback (default: 3)
    SEMANTIC_RAG_TIMEOUT_SECONDS: Per-request deadline (default: 10)
    VOYAGE_API_KEY: Embedding provider credential (default: unset)
    VOYAGE_MODEL: Embedding model (default: voyage-3)
    EMBEDDING_DIMENSION: Vector dimension (default: 1024)
    EMBEDDING_CACHE_TTL_SECONDS: Embedding cache TTL (default: 300)
    EMBEDDING_BREAKER_THRESHOLD: Failures before opening the breaker (default: 5)
    EMBEDDING_BREAKER_COOLDOWN_SECONDS: Breaker cooldown (default: 60)
    ENABLE_CONVERSATION_HISTORY: History feature flag (default: true)
    HISTORY_* : see HistoryStorageConfig / HistoryRetrievalConfig / KeywordChunkingConfig
"""

from dataclasses import dataclass, field
from typing import Optional

from secondme.utils.env import (
    get_env_flag,
    get_env_float,
    get_env_int,
    get_env_str,
)
from secondme.storage.cache.config import RedisConfig
from secondme.storage.graph.config import FalkorDBConfig


# =============================================================================
# Semantic RAG
# =============================================================================

@dataclass
class TypeSearchOptions:
    """
    Vector-phase limits for one entity type.

    Attributes:
        top_k: Maximum candidates returned by the vector index
        min_score: Minimum similarity for a candidate to be kept
    """
    top_k: int
    min_score: float

    def __post_init__(self):
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        if not 0 <= self.min_score <= 1:
            raise ValueError(f"min_score must be in [0, 1], got {self.min_score}")


@dataclass
class SearchConfig:
    """Per-type vector search options (Topic, Person, Event)."""
    topics: TypeSearchOptions = field(default_factory=lambda: TypeSearchOptions(top_k=10, min_score=0.7))
    people: TypeSearchOptions = field(default_factory=lambda: TypeSearchOptions(top_k=10, min_score=0.65))
    events: TypeSearchOptions = field(default_factory=lambda: TypeSearchOptions(top_k=5, min_score=0.7))


@dataclass
class RerankWeights:
    """
    Weights of the reranking signals.

    The default is similarity-only: the final score equals the vector score.
    Use ``BLENDED_WEIGHTS`` to mix in recency, frequency and entity priority.
    """
    similarity: float = 1.0
    recency: float = 0.0
    frequency: float = 0.0
    entity_priority: float = 0.0

    def __post_init__(self):
        for name in ("similarity", "recency", "frequency", "entity_priority"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} weight must be >= 0, got {value}")


BLENDED_WEIGHTS = RerankWeights(similarity=0.5, recency=0.25, frequency=0.15, entity_priority=0.1)


@dataclass
class RerankOptions:
    """
    Cutoff parameters of the reranker.

    Attributes:
        max_results: Hard cap on results per entity type
        min_score: Candidates below this final score are dropped
        score_drop: Stop once a score falls more than this fraction
                    below the best score seen so far
        weights: Signal weights used to compute the final score
    """
    max_results: int = 10
    min_score: float = 0.4
    score_drop: float = 0.3
    weights: RerankWeights = field(default_factory=RerankWeights)

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError(f"max_results must be >= 1, got {self.max_results}")
        if not 0 <= self.score_drop <= 1:
            raise ValueError(f"score_drop must be in [0, 1], got {self.score_drop}")


@dataclass
class ContextLimits:
    """Maximum entities per list in a ContactContext."""
    people: int = 10
    topics: int = 8
    events: int = 5

    def __post_init__(self):
        for name in ("people", "topics", "events"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} limit must be >= 0, got {value}")


@dataclass
class SemanticRagConfig:
    """
    Configuration of the retrieval orchestrator.

    Attributes:
        context_enabled: Master switch; when off no graph context is produced
        enabled: Feature flag for vector (semantic) retrieval
        search: Vector-phase options per entity type
        reranking: Reranker cutoff options
        fallback_threshold: Below this many semantic entities the legacy
                            traversal is merged in (hybrid)
        limits: Caps applied to every returned ContactContext
        index_check_ttl_seconds: How long the vector-index probe is cached
        timeout_seconds: Deadline for one retrieval attempt
    """
    context_enabled: bool = field(default_factory=lambda: get_env_flag("GRAPH_CONTEXT_ENABLED", True))
    enabled: bool = field(default_factory=lambda: get_env_flag("SEMANTIC_RAG_ENABLED", False))
    search: SearchConfig = field(default_factory=SearchConfig)
    reranking: RerankOptions = field(default_factory=RerankOptions)
    fallback_threshold: int = field(default_factory=lambda: get_env_int("SEMANTIC_RAG_FALLBACK_THRESHOLD", 3))
    limits: ContextLimits = field(default_factory=ContextLimits)
    index_check_ttl_seconds: float = 60.0
    timeout_seconds: float = field(default_factory=lambda: get_env_float("SEMANTIC_RAG_TIMEOUT_SECONDS", 10.0))

    def __post_init__(self):
        if self.fallback_threshold < 0:
            raise ValueError(f"fallback_threshold must be >= 0, got {self.fallback_threshold}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.index_check_ttl_seconds < 0:
            raise ValueError(f"index_check_ttl_seconds must be >= 0, got {self.index_check_ttl_seconds}")


# =============================================================================
# Embeddings
# =============================================================================

@dataclass
class EmbeddingConfig:
    """
    Voyage embedding provider settings, cache TTL and circuit breaker.
    """
    api_key: Optional[str] = field(default_factory=lambda: get_env_str("VOYAGE_API_KEY", "") or None)
    api_url: str = field(default_factory=lambda: get_env_str("VOYAGE_API_URL", "https://api.voyageai.com/v1/embeddings"))
    model: str = field(default_factory=lambda: get_env_str("VOYAGE_MODEL", "voyage-3"))
    dimension: int = field(default_factory=lambda: get_env_int("EMBEDDING_DIMENSION", 1024))
    cache_ttl_seconds: int = field(default_factory=lambda: get_env_int("EMBEDDING_CACHE_TTL_SECONDS", 300))
    cache_key_prefix: str = "EMB:msg:"
    breaker_threshold: int = field(default_factory=lambda: get_env_int("EMBEDDING_BREAKER_THRESHOLD", 5))
    breaker_cooldown_seconds: float = field(
        default_factory=lambda: get_env_float("EMBEDDING_BREAKER_COOLDOWN_SECONDS", 60.0)
    )
    timeout_seconds: float = 10.0

    def __post_init__(self):
        if self.dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {self.dimension}")
        if self.cache_ttl_seconds < 1:
            raise ValueError(f"cache_ttl_seconds must be >= 1, got {self.cache_ttl_seconds}")
        if self.breaker_threshold < 1:
            raise ValueError(f"breaker_threshold must be >= 1, got {self.breaker_threshold}")


# =============================================================================
# Conversation history
# =============================================================================

@dataclass
class HistoryStorageConfig:
    """Key layout of the per-contact message sets written by ingestion."""
    key_prefix: str = field(default_factory=lambda: get_env_str("HISTORY_KEY_PREFIX", "HISTORY:"))


@dataclass
class HistoryRetrievalConfig:
    """
    Budget for history selection.

    Attributes:
        max_tokens: Token budget for the history section of the prompt
        min_messages: Floor honoured even if it slightly exceeds max_tokens
        max_messages: Maximum messages loaded and returned
        max_age_hours: Messages older than this are ignored
        max_message_length: Longer contents are truncated
    """
    max_tokens: int = field(default_factory=lambda: get_env_int("HISTORY_MAX_TOKENS", 1500))
    min_messages: int = field(default_factory=lambda: get_env_int("HISTORY_MIN_MESSAGES", 5))
    max_messages: int = field(default_factory=lambda: get_env_int("HISTORY_RETRIEVAL_MAX_MESSAGES", 40))
    max_age_hours: float = field(default_factory=lambda: get_env_float("HISTORY_MAX_AGE_HOURS", 24))
    max_message_length: int = field(default_factory=lambda: get_env_int("HISTORY_MAX_MESSAGE_LENGTH", 500))

    def __post_init__(self):
        if self.max_messages < 1:
            raise ValueError(f"max_messages must be >= 1, got {self.max_messages}")
        if self.min_messages < 0 or self.min_messages > self.max_messages:
            raise ValueError(
                f"min_messages must be in [0, max_messages], got {self.min_messages}"
            )
        if self.max_tokens < 0:
            raise ValueError(f"max_tokens must be >= 0, got {self.max_tokens}")
        if self.max_message_length < 1:
            raise ValueError(f"max_message_length must be >= 1, got {self.max_message_length}")


@dataclass
class KeywordChunkingConfig:
    """
    Keyword-continuity chunking parameters.

    Attributes:
        gap_minutes: Pause after which a topic boundary is possible
        min_keyword_overlap: Overlap ratio that keeps a message in the chunk
        min_word_length: Shorter words are not keywords
    """
    gap_minutes: float = field(default_factory=lambda: get_env_float("HISTORY_GAP_MINUTES", 10))
    min_keyword_overlap: float = field(default_factory=lambda: get_env_float("HISTORY_MIN_KEYWORD_OVERLAP", 0.25))
    min_word_length: int = field(default_factory=lambda: get_env_int("HISTORY_MIN_WORD_LENGTH", 4))

    def __post_init__(self):
        if not 0 <= self.min_keyword_overlap <= 1:
            raise ValueError(f"min_keyword_overlap must be in [0, 1], got {self.min_keyword_overlap}")
        if self.gap_minutes < 0:
            raise ValueError(f"gap_minutes must be >= 0, got {self.gap_minutes}")


@dataclass
class HistoryConfig:
    """Complete conversation-history configuration."""
    enabled: bool = field(default_factory=lambda: get_env_flag("ENABLE_CONVERSATION_HISTORY", True))
    storage: HistoryStorageConfig = field(default_factory=HistoryStorageConfig)
    retrieval: HistoryRetrievalConfig = field(default_factory=HistoryRetrievalConfig)
    chunking: KeywordChunkingConfig = field(default_factory=KeywordChunkingConfig)
    timeout_seconds: float = 5.0

    def history_key(self, contact_id: str) -> str:
        """Key of the recency-ordered message set of a contact."""
        return f"{self.storage.key_prefix}{contact_id}"


# =============================================================================
# Aggregate
# =============================================================================

@dataclass
class Settings:
    """All configuration sections of the engine."""
    semantic_rag: SemanticRagConfig = field(default_factory=SemanticRagConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    falkordb: FalkorDBConfig = field(default_factory=FalkorDBConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
