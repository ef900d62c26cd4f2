"""
HybridRetriever
===============

Retrieval orchestrator: picks a strategy per request, runs it and returns
a bounded ContactContext.

Flow:
    (message, contact_id)
            ↓
    gate: flag, credential, cached index probe  ──no──→ LEGACY
            ↓ yes
    embed message (cache / breaker)
            ↓
    3 x vector-graph search (concurrent) → rerank per type
            ↓
    total < fallback_threshold ?  ──yes──→ HYBRID (semantic ∪ legacy by name)
            ↓ no
         SEMANTIC

Any failure of the semantic attempt (provider down, breaker open, deadline
exceeded) turns into a LEGACY run. ``retrieve_context`` never raises.
"""

import asyncio
import time
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import structlog

from secondme.config.settings import ContextLimits, SemanticRagConfig
from secondme.embeddings.client import VoyageEmbeddingClient
from secondme.retrieval.legacy_queries import LegacyGraphQueries
from secondme.retrieval.models import (
    ContactContext,
    EntityType,
    RankedResult,
    RetrievalMethod,
    RetrievalResult,
    RetrievalStats,
    dedupe_by_name,
)
from secondme.retrieval.reranker import (
    log_retrieval_stats,
    merge_ranked_results,
    rerank_and_select,
)
from secondme.retrieval.semantic_queries import VectorGraphQueries
from secondme.retrieval.strategy import RetrievalState, StrategyDecision, choose_strategy
from secondme.utils.deadline import Deadline

log = structlog.get_logger()


def cap_context(context: ContactContext, limits: ContextLimits) -> ContactContext:
    """De-duplicate each list by name and cap it to ``limits``."""
    return ContactContext(
        people=dedupe_by_name(context.people)[:limits.people],
        topics=dedupe_by_name(context.topics)[:limits.topics],
        events=dedupe_by_name(context.events)[:limits.events],
    )


def merge_contexts(
    semantic: ContactContext,
    legacy: ContactContext,
    limits: Optional[ContextLimits] = None
) -> ContactContext:
    """
    Semantic entries first, then legacy entries with a new name.

    Semantic entries win on name collisions; each list is capped.
    """
    merged = ContactContext(
        people=semantic.people + legacy.people,
        topics=semantic.topics + legacy.topics,
        events=semantic.events + legacy.events,
    )
    return cap_context(merged, limits or ContextLimits())


class HybridRetriever:
    """
    Contextual retrieval with graceful degradation.

    Args:
        embedder: Embedding client (owns cache and circuit breaker)
        semantic_queries: Vector-graph query layer (owns index probe cache)
        legacy_queries: Plain traversal query layer
        config: Strategy, search, rerank and index-probe TTL settings
        clock: Monotonic clock for latency and deadlines

    Example:
        retriever = HybridRetriever(embedder, semantic, legacy, SemanticRagConfig())
        result = await retriever.retrieve_context("Did you talk to John?", "contact-42")
        result.method      # RetrievalMethod.SEMANTIC / HYBRID / LEGACY / DISABLED
        result.context.people
    """

    def __init__(
        self,
        embedder: VoyageEmbeddingClient,
        semantic_queries: VectorGraphQueries,
        legacy_queries: LegacyGraphQueries,
        config: Optional[SemanticRagConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.embedder = embedder
        self.semantic_queries = semantic_queries
        self.legacy_queries = legacy_queries
        self.config = config or SemanticRagConfig()
        self._clock = clock

        # The probe cache belongs to the query layer; its TTL comes from config
        self.semantic_queries.index_check_ttl_seconds = self.config.index_check_ttl_seconds

        self._handlers: Dict[
            RetrievalMethod,
            Callable[[str, Optional[ContactContext]], Awaitable[ContactContext]]
        ] = {
            RetrievalMethod.DISABLED: self._run_disabled,
            RetrievalMethod.LEGACY: self._run_legacy,
            RetrievalMethod.HYBRID: self._run_hybrid,
            RetrievalMethod.SEMANTIC: self._run_semantic,
        }

        log.info(
            "HybridRetriever initialized",
            context_enabled=self.config.context_enabled,
            semantic_enabled=self.config.enabled,
            fallback_threshold=self.config.fallback_threshold,
            timeout_seconds=self.config.timeout_seconds
        )

    def is_semantic_enabled(self) -> bool:
        """True when the semantic feature flag (and graph context) is on."""
        return self.config.context_enabled and self.config.enabled

    def refresh_index_check(self) -> None:
        """Force the next request to probe the vector indexes again."""
        self.semantic_queries.refresh_index_check()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def retrieve_context(self, message: str, contact_id: str) -> RetrievalResult:
        """
        Assemble graph context for an incoming message.

        Never raises: on unexpected errors an empty legacy result is returned.
        """
        start_time = self._clock()
        try:
            return await self._retrieve(message, contact_id, start_time)
        except Exception as e:
            log.error(
                "Context retrieval failed",
                contact_id=contact_id,
                error=str(e) or type(e).__name__
            )
            return RetrievalResult(
                context=ContactContext(),
                method=RetrievalMethod.LEGACY,
                latency_ms=self._elapsed_ms(start_time),
                reason="retrieval error",
            )

    async def _retrieve(self, message: str, contact_id: str, start_time: float) -> RetrievalResult:
        state = await self._gate_state()
        decision = choose_strategy(state)

        stats: Optional[RetrievalStats] = None
        semantic_context: Optional[ContactContext] = None

        if decision.strategy is RetrievalMethod.SEMANTIC:
            try:
                deadline = Deadline(self.config.timeout_seconds, self._clock)
                semantic_context, stats = await deadline.run(
                    self._semantic_retrieval(message, contact_id, deadline)
                )
                state = replace(state, semantic_failed=False, semantic_total=semantic_context.total)
            except Exception as e:
                log.warning(
                    "Semantic retrieval failed, falling back to legacy",
                    contact_id=contact_id,
                    error_type=type(e).__name__,
                    error=str(e)
                )
                state = replace(state, semantic_failed=True)
            decision = choose_strategy(state)

        context = await self._handlers[decision.strategy](contact_id, semantic_context)

        result = RetrievalResult(
            context=context,
            method=decision.strategy,
            latency_ms=self._elapsed_ms(start_time),
            stats=stats,
            reason=decision.reason,
        )
        self._log_result(contact_id, result, decision)
        return result

    async def _gate_state(self) -> RetrievalState:
        state = RetrievalState(
            context_enabled=self.config.context_enabled,
            enabled=self.config.enabled,
            provider_configured=self.embedder.is_configured(),
            fallback_threshold=self.config.fallback_threshold,
        )
        # Probe only when everything before it passes
        if state.context_enabled and state.enabled and state.provider_configured:
            available = await self.semantic_queries.check_vector_indexes_exist(
                timeout=self.config.timeout_seconds
            )
            state = replace(state, indexes_available=available)
        return state

    # ------------------------------------------------------------------
    # Semantic attempt
    # ------------------------------------------------------------------

    async def _semantic_retrieval(
        self,
        message: str,
        contact_id: str,
        deadline: Deadline
    ) -> Tuple[ContactContext, RetrievalStats]:
        """
        Embed, search the three types concurrently, rerank each type.

        Raises:
            ProviderUnavailable: Embedding failed or breaker open
        """
        embedding_result = await self.embedder.embed(message, timeout=deadline.remaining())
        embedding = embedding_result.embedding

        search = self.config.search
        topic_results, people_results, event_results = await asyncio.gather(
            self.semantic_queries.search_relevant_topics(
                embedding, contact_id, search.topics, timeout=deadline.remaining()
            ),
            self.semantic_queries.search_relevant_people(
                embedding, contact_id, search.people, timeout=deadline.remaining()
            ),
            self.semantic_queries.search_relevant_events(
                embedding, contact_id, search.events, timeout=deadline.remaining()
            ),
        )

        ranked_topics = self._rerank(topic_results, EntityType.TOPIC)
        ranked_people = self._rerank(people_results, EntityType.PERSON)
        ranked_events = self._rerank(event_results, EntityType.EVENT)

        log_retrieval_stats(
            query_length=len(message),
            candidates={
                "topics": len(topic_results),
                "people": len(people_results),
                "events": len(event_results),
            },
            selected={
                "topics": len(ranked_topics),
                "people": len(ranked_people),
                "events": len(ranked_events),
            },
            final_results=merge_ranked_results(ranked_topics, ranked_people, ranked_events),
        )

        context = cap_context(
            ContactContext(people=ranked_people, topics=ranked_topics, events=ranked_events),
            self.config.limits
        )
        stats = RetrievalStats(
            embedding_cached=embedding_result.from_cache,
            topic_candidates=len(topic_results),
            people_candidates=len(people_results),
            event_candidates=len(event_results),
            tokens_used=embedding_result.tokens_used,
        )
        return context, stats

    def _rerank(self, results: List[RankedResult], entity_type: EntityType) -> List[RankedResult]:
        return rerank_and_select(results, entity_type, self.config.reranking)

    # ------------------------------------------------------------------
    # Strategy handlers
    # ------------------------------------------------------------------

    async def _run_disabled(self, contact_id: str, semantic: Optional[ContactContext]) -> ContactContext:
        return ContactContext()

    async def _run_semantic(self, contact_id: str, semantic: Optional[ContactContext]) -> ContactContext:
        return semantic if semantic is not None else ContactContext()

    async def _run_legacy(self, contact_id: str, semantic: Optional[ContactContext]) -> ContactContext:
        # Fresh budget: the semantic attempt may have used up its deadline
        context = await self.legacy_queries.get_contact_context(
            contact_id,
            timeout=self.config.timeout_seconds
        )
        return cap_context(context, self.config.limits)

    async def _run_hybrid(self, contact_id: str, semantic: Optional[ContactContext]) -> ContactContext:
        legacy = await self.legacy_queries.get_contact_context(
            contact_id,
            timeout=self.config.timeout_seconds
        )
        return merge_contexts(semantic or ContactContext(), legacy, self.config.limits)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _elapsed_ms(self, start_time: float) -> float:
        return round((self._clock() - start_time) * 1000, 1)

    def _log_result(self, contact_id: str, result: RetrievalResult, decision: StrategyDecision) -> None:
        log.info(
            "Context retrieved",
            contact_id=contact_id,
            method=result.method.value,
            reason=decision.reason,
            people=len(result.context.people),
            topics=len(result.context.topics),
            events=len(result.context.events),
            latency_ms=result.latency_ms,
            embedding_cached=result.stats.embedding_cached if result.stats else None
        )
