"""
Retrieval Strategy
==================

Pure decision function of the degradation ladder.

    context disabled                  -> DISABLED
    flag off / no credential / no idx -> LEGACY
    no semantic outcome yet           -> SEMANTIC   (attempt it)
    semantic attempt failed           -> LEGACY
    semantic total < threshold        -> HYBRID
    otherwise                         -> SEMANTIC

The orchestrator evaluates it twice: once before the semantic attempt
(gate) and once with its outcome (sufficiency). No I/O happens here.
"""

from dataclasses import dataclass
from typing import Optional

from secondme.retrieval.models import RetrievalMethod


@dataclass(frozen=True)
class RetrievalState:
    """
    Inputs of the decision.

    Attributes:
        context_enabled: Graph context master switch
        enabled: Semantic retrieval feature flag
        provider_configured: Embedding credential present
        indexes_available: Cached vector-index probe result
        semantic_failed: The semantic attempt raised (None before the attempt)
        semantic_total: Entities returned by the semantic attempt
        fallback_threshold: Minimum semantic entities to skip hybrid
    """
    context_enabled: bool = True
    enabled: bool = False
    provider_configured: bool = False
    indexes_available: bool = False
    semantic_failed: Optional[bool] = None
    semantic_total: int = 0
    fallback_threshold: int = 3


@dataclass(frozen=True)
class StrategyDecision:
    strategy: RetrievalMethod
    reason: str


def choose_strategy(state: RetrievalState) -> StrategyDecision:
    """Decide which retrieval strategy applies to ``state``."""
    if not state.context_enabled:
        return StrategyDecision(RetrievalMethod.DISABLED, "graph context disabled")

    if not state.enabled:
        return StrategyDecision(RetrievalMethod.LEGACY, "semantic retrieval disabled")
    if not state.provider_configured:
        return StrategyDecision(RetrievalMethod.LEGACY, "embedding provider not configured")
    if not state.indexes_available:
        return StrategyDecision(RetrievalMethod.LEGACY, "vector indexes unavailable")

    if state.semantic_failed is None:
        return StrategyDecision(RetrievalMethod.SEMANTIC, "semantic retrieval available")
    if state.semantic_failed:
        return StrategyDecision(RetrievalMethod.LEGACY, "semantic retrieval failed")

    if state.semantic_total < state.fallback_threshold:
        return StrategyDecision(
            RetrievalMethod.HYBRID,
            f"only {state.semantic_total} semantic results (threshold {state.fallback_threshold})"
        )
    return StrategyDecision(RetrievalMethod.SEMANTIC, f"{state.semantic_total} semantic results")
