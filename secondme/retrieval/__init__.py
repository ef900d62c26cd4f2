"""
Retrieval
=========

Contextual graph retrieval for an incoming message.

Components:
- HybridRetriever: orchestrator (semantic / hybrid / legacy / disabled)
- VectorGraphQueries: vector search + contact-scoped graph filter
- LegacyGraphQueries: plain traversal fallback
- reranker: score, knee cutoff, cap
- choose_strategy: pure degradation-ladder decision

Example:
    from secondme.retrieval import HybridRetriever, format_context_for_prompt

    result = await retriever.retrieve_context(message, contact_id)
    section = format_context_for_prompt(result.context)
"""

from secondme.retrieval.formatting import format_context_for_prompt
from secondme.retrieval.hybrid import HybridRetriever, cap_context, merge_contexts
from secondme.retrieval.legacy_queries import LegacyGraphQueries
from secondme.retrieval.models import (
    CandidateEntity,
    ContactContext,
    EntityType,
    RankedResult,
    RetrievalMethod,
    RetrievalResult,
    RetrievalStats,
)
from secondme.retrieval.reranker import (
    merge_ranked_results,
    rerank_and_select,
    rerank_results,
    select_top_results,
)
from secondme.retrieval.semantic_queries import VectorGraphQueries
from secondme.retrieval.strategy import RetrievalState, StrategyDecision, choose_strategy

__all__ = [
    "CandidateEntity",
    "ContactContext",
    "EntityType",
    "HybridRetriever",
    "LegacyGraphQueries",
    "RankedResult",
    "RetrievalMethod",
    "RetrievalResult",
    "RetrievalState",
    "RetrievalStats",
    "StrategyDecision",
    "VectorGraphQueries",
    "cap_context",
    "choose_strategy",
    "format_context_for_prompt",
    "merge_contexts",
    "merge_ranked_results",
    "rerank_and_select",
    "rerank_results",
    "select_top_results",
]
