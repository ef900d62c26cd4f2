"""
Vector-Graph Queries
====================

Two-phase semantic search per entity type over FalkorDB.

1. Vector phase: ``db.idx.vector.queryNodes`` over the type's embedding
   index, keeping up to ``top_k`` candidates with score >= ``min_score``.
2. Graph phase: keep only candidates linked to the contact through the
   type-specific relationship and enrich them with relationship metadata.

    Topic  : (Contact)-[MENTIONED]->(Topic)         times, lastMentioned
    Person : (Contact)-[KNOWS]->(Person)            + WORKS_AT Company
    Event  : (Contact)-[ATTENDING|MENTIONED]->(Event)

Phase 2 does not return scores; they are re-attached from phase 1 by id.
A failure in one type degrades to an empty list for that type only.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

import structlog
from pydantic import BaseModel

from secondme.config.settings import TypeSearchOptions
from secondme.errors import IndexUnavailable, QueryError
from secondme.retrieval.models import (
    EntityType,
    EventRow,
    PersonRow,
    RankedResult,
    TopicRow,
    VectorCandidateRow,
    parse_rows,
)
from secondme.storage.graph import FalkorDBClient

log = structlog.get_logger()


VECTOR_QUERY = """
    CALL db.idx.vector.queryNodes('{label}', 'embedding', $topK, vecf32($embedding))
    YIELD node, score
    WHERE score >= $minScore
    RETURN node.id AS id, node.name AS name, score
"""

INDEX_PROBE_QUERY = """
    CALL db.idx.vector.queryNodes('Topic', 'embedding', 1, vecf32($embedding))
    YIELD node, score
    RETURN count(node) AS count
"""

TOPIC_FILTER_QUERY = """
    UNWIND $nodeIds AS nodeId
    MATCH (c:Contact {id: $contactId})-[m:MENTIONED]->(t:Topic {id: nodeId})
    RETURN t.id AS id, t.name AS name, t.category AS category,
           t.notes AS notes, m.times AS times, m.lastMentioned AS lastMentioned
"""

PERSON_FILTER_QUERY = """
    UNWIND $nodeIds AS nodeId
    MATCH (c:Contact {id: $contactId})-[:KNOWS]->(p:Person {id: nodeId})
    OPTIONAL MATCH (p)-[:WORKS_AT]->(comp:Company)
    RETURN p.id AS id, p.name AS name, p.occupation AS occupation,
           p.notes AS notes, p.lastMentioned AS lastMentioned,
           comp.name AS company, comp.industry AS industry
"""

EVENT_FILTER_QUERY = """
    UNWIND $nodeIds AS nodeId
    MATCH (c:Contact {id: $contactId})-[:ATTENDING|:MENTIONED]->(e:Event {id: nodeId})
    RETURN e.id AS id, e.name AS name, e.date AS date, e.location AS location,
           e.description AS description, e.notes AS notes
"""


@dataclass(frozen=True)
class _TypeQuery:
    filter_query: str
    row_model: Type[BaseModel]
    to_result: Callable[[Any, float], RankedResult]


_TYPE_QUERIES: Dict[EntityType, _TypeQuery] = {
    EntityType.TOPIC: _TypeQuery(TOPIC_FILTER_QUERY, TopicRow, RankedResult.from_topic),
    EntityType.PERSON: _TypeQuery(PERSON_FILTER_QUERY, PersonRow, RankedResult.from_person),
    EntityType.EVENT: _TypeQuery(EVENT_FILTER_QUERY, EventRow, RankedResult.from_event),
}


class VectorGraphQueries:
    """
    Semantic search over the knowledge graph, scoped to one contact.

    Also owns the vector-index liveness probe, whose result is cached for
    ``index_check_ttl_seconds``.

    Example:
        queries = VectorGraphQueries(graph_client, dimension=1024)
        people = await queries.search_relevant_people(
            embedding, "contact-42", TypeSearchOptions(top_k=10, min_score=0.65)
        )
    """

    def __init__(
        self,
        graph: FalkorDBClient,
        dimension: int = 1024,
        index_check_ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.graph = graph
        self.dimension = dimension
        self.index_check_ttl_seconds = index_check_ttl_seconds
        self._clock = clock
        self._indexes_available: Optional[bool] = None
        self._index_checked_at = 0.0

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_relevant(
        self,
        entity_type: EntityType,
        embedding: List[float],
        contact_id: str,
        options: TypeSearchOptions,
        timeout: Optional[float] = None
    ) -> List[RankedResult]:
        """
        Run both phases for one entity type.

        Never raises: any query failure is logged and yields ``[]``.

        Returns:
            Results linked to the contact, scored by vector similarity,
            unique by id, in descending score order
        """
        try:
            return await self._search(entity_type, embedding, contact_id, options, timeout)
        except QueryError as e:
            log.error(
                "Semantic query failed",
                entity_type=e.entity_type,
                contact_id=contact_id,
                error=str(e)
            )
        except Exception as e:
            log.error(
                "Unexpected error in semantic query",
                entity_type=entity_type.value,
                contact_id=contact_id,
                error=str(e) or type(e).__name__
            )
        return []

    async def search_relevant_topics(
        self,
        embedding: List[float],
        contact_id: str,
        options: TypeSearchOptions,
        timeout: Optional[float] = None
    ) -> List[RankedResult]:
        return await self.search_relevant(EntityType.TOPIC, embedding, contact_id, options, timeout)

    async def search_relevant_people(
        self,
        embedding: List[float],
        contact_id: str,
        options: TypeSearchOptions,
        timeout: Optional[float] = None
    ) -> List[RankedResult]:
        return await self.search_relevant(EntityType.PERSON, embedding, contact_id, options, timeout)

    async def search_relevant_events(
        self,
        embedding: List[float],
        contact_id: str,
        options: TypeSearchOptions,
        timeout: Optional[float] = None
    ) -> List[RankedResult]:
        return await self.search_relevant(EntityType.EVENT, embedding, contact_id, options, timeout)

    async def _search(
        self,
        entity_type: EntityType,
        embedding: List[float],
        contact_id: str,
        options: TypeSearchOptions,
        timeout: Optional[float]
    ) -> List[RankedResult]:
        if entity_type not in _TYPE_QUERIES:
            raise QueryError(f"No semantic query for {entity_type.value}", entity_type.value)
        type_query = _TYPE_QUERIES[entity_type]

        # STEP 1: vector phase
        candidate_rows = await self._query(
            "vector",
            entity_type,
            VECTOR_QUERY.format(label=entity_type.value),
            {
                "embedding": embedding,
                "topK": options.top_k,
                "minScore": options.min_score,
            },
            timeout
        )
        candidates = parse_rows(VectorCandidateRow, candidate_rows)
        if not candidates:
            log.debug("No vector candidates", entity_type=entity_type.value)
            return []

        # Highest score wins when the index returns the same node twice
        scores: Dict[str, float] = {}
        for candidate in candidates:
            if candidate.score > scores.get(candidate.id, float("-inf")):
                scores[candidate.id] = candidate.score

        # STEP 2: graph phase
        linked_rows = await self._query(
            "graph",
            entity_type,
            type_query.filter_query,
            {"nodeIds": list(scores), "contactId": contact_id},
            timeout
        )

        results: List[RankedResult] = []
        seen = set()
        for row in parse_rows(type_query.row_model, linked_rows):
            if row.id is None or row.id in seen or row.id not in scores:
                continue
            seen.add(row.id)
            results.append(type_query.to_result(row, scores[row.id]))

        results.sort(key=lambda r: r.score, reverse=True)

        log.debug(
            "Semantic query completed",
            entity_type=entity_type.value,
            candidates=len(candidates),
            linked=len(results)
        )
        return results

    async def _query(
        self,
        phase: str,
        entity_type: EntityType,
        cypher: str,
        params: Dict[str, Any],
        timeout: Optional[float]
    ) -> List[Dict[str, Any]]:
        try:
            return await self.graph.query(cypher, params, timeout=timeout)
        except Exception as e:
            raise QueryError(
                f"{phase} phase failed: {e or type(e).__name__}", entity_type.value
            ) from e

    # ------------------------------------------------------------------
    # Index liveness
    # ------------------------------------------------------------------

    async def check_vector_indexes_exist(
        self,
        force: bool = False,
        timeout: Optional[float] = None
    ) -> bool:
        """
        Probe the vector index with a zero vector.

        The outcome (True or False) is cached for ``index_check_ttl_seconds``.
        """
        now = self._clock()
        if (
            not force
            and self._indexes_available is not None
            and now - self._index_checked_at <= self.index_check_ttl_seconds
        ):
            return self._indexes_available

        try:
            await self.probe_vector_indexes(timeout=timeout)
            available = True
        except IndexUnavailable as e:
            log.warning("Vector indexes not available", error=str(e))
            available = False

        self._indexes_available = available
        self._index_checked_at = now
        return available

    async def probe_vector_indexes(self, timeout: Optional[float] = None) -> None:
        """
        Run the zero-vector probe once, bypassing the cache.

        Raises:
            IndexUnavailable: The index is missing or the query failed
        """
        try:
            await self.graph.query(
                INDEX_PROBE_QUERY,
                {"embedding": [0.0] * self.dimension},
                timeout=timeout
            )
        except Exception as e:
            raise IndexUnavailable(str(e) or type(e).__name__) from e

    def refresh_index_check(self) -> None:
        """Forget the cached probe result; the next check queries again."""
        self._indexes_available = None
        self._index_checked_at = 0.0
