"""
Configuration module for the SecondMe context engine.
"""

from .settings import (
    BLENDED_WEIGHTS,
    ContextLimits,
    EmbeddingConfig,
    HistoryConfig,
    HistoryRetrievalConfig,
    HistoryStorageConfig,
    KeywordChunkingConfig,
    RerankOptions,
    RerankWeights,
    SearchConfig,
    SemanticRagConfig,
    Settings,
    TypeSearchOptions,
)
from .loader import load_settings

__all__ = [
    "BLENDED_WEIGHTS",
    "ContextLimits",
    "EmbeddingConfig",
    "HistoryConfig",
    "HistoryRetrievalConfig",
    "HistoryStorageConfig",
    "KeywordChunkingConfig",
    "RerankOptions",
    "RerankWeights",
    "SearchConfig",
    "SemanticRagConfig",
    "Settings",
    "TypeSearchOptions",
    "load_settings",
]
